"""
BizManager Pro
Gestionale per piccole attività: cassa, lavori, acquisti e preventivi.
"""

__version__ = "2.0.0"
