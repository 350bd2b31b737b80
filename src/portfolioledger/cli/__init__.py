"""Command-line interface for portfolioledger."""
