"""Core helpers of walletkeys."""
