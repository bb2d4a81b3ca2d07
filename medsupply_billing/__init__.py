"""
MedSupply billing core: line-item tax math and invoice balance reconciliation
over a sqlite store.
"""
from .constants import APP_NAME, SCHEMA_VERSION

__version__ = SCHEMA_VERSION

__all__ = ["APP_NAME", "__version__"]
