"""
dex_pricer: on-chain token pricing against WETH on Base, plus a
rate-budgeted external price refresh service.
"""

__version__ = "0.1.0"
