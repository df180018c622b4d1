"""Command-line interface of walletkeys."""
