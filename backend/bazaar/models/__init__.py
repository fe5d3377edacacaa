from .catalog import Product, ApprovalStatus, SellerTier, SellerTierLevel, BYPASS_TIERS
from .inventory import InventoryLedgerEntry, LowStockAlert, ChangeType, LedgerReason, SALE_REASONS
from .qa import QAAssessment, QAStatus, RejectionStage, TERMINAL_STATUSES

__all__ = [
    'Product', 'ApprovalStatus', 'SellerTier', 'SellerTierLevel', 'BYPASS_TIERS',
    'InventoryLedgerEntry', 'LowStockAlert', 'ChangeType', 'LedgerReason', 'SALE_REASONS',
    'QAAssessment', 'QAStatus', 'RejectionStage', 'TERMINAL_STATUSES',
]
