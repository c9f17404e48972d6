"""FeedView application: orchestrator and command-line interface."""
