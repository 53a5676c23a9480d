"""
txscope - Ethereum transaction gas and security analysis

Flattens a transaction's call trace, profiles its gas by function,
summarizes state changes and flags suspicious call patterns.
"""

__version__ = "0.1.0"

# Main entry point
from .cli.main import main

# Core components
from .config import AnalyzerConfig, AnalysisPolicy, TraceLimits, load_config
from .core.analyzer import TransactionAnalyzer
from .core.fetcher import TransactionFetcher
from .core.models import TransactionAnalysisResult

__all__ = [
    '__version__',
    'main',
    'AnalyzerConfig',
    'AnalysisPolicy',
    'TraceLimits',
    'load_config',
    'TransactionAnalyzer',
    'TransactionFetcher',
    'TransactionAnalysisResult',
]
