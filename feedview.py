#!/usr/bin/env python3
"""
FeedView - Live camera image feed with AI analysis
Main entry point for the application.
"""

from feedview.cli import main

if __name__ == "__main__":
    main()
