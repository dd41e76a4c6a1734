"""Command line interface for nlayernet."""
