#!/usr/bin/env python3
"""Main entry point for the radio tuner application."""

from .ui.app import TunerApp, setup_logging

def main():
    """Run the radio tuner application."""
    try:
        setup_logging()
    except OSError as e:
        print(f"Warning: Could not set up the log file: {e}")
        print("The application will run without a log file.")

    # Run the application
    app = TunerApp()
    app.run()

if __name__ == "__main__":
    main()
