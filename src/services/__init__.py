"""서비스 모듈 - 카탈로그/벌크/조합/승인/배수"""
from .catalog import RateCatalog, validate_draft
from .batch import BatchRunner, BatchItem
from .bulk_editor import BulkRateEditor
from .combinations import CombinationService
from .approval import ChangeApprovalWorkflow
from .multipliers import MultiplierService

__all__ = [
    "RateCatalog",
    "validate_draft",
    "BatchRunner",
    "BatchItem",
    "BulkRateEditor",
    "CombinationService",
    "ChangeApprovalWorkflow",
    "MultiplierService",
]
