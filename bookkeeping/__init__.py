"""
Bookkeeping - Source Package

A small-business bookkeeping engine: purchases, sales, expenses, kitchen
production and physical counts flowing into a FIFO-costed inventory and a
set of accounts that always satisfies

    cash + bank + inventory + fixed_assets == equity + revenue - cost_of_goods - expenses

DESIGN PRINCIPLES:
1. Balances change only through pure operation functions
2. One user action is one atomic state update
3. Transactions are never deleted, only voided with a contra-entry
4. Income-statement figures are derived from the log, never trusted from storage
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Jardin ERP Team"
