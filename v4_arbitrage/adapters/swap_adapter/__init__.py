from .adapter import SwapAdapter, WalletContext

__all__ = ["SwapAdapter", "WalletContext"]
