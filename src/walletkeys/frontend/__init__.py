"""Front ends of walletkeys."""
