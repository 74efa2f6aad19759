"""Import validation package."""

from ledger.validation.validator import BACKUP_TYPE, BACKUP_VERSION, ImportValidator

__all__ = ["BACKUP_TYPE", "BACKUP_VERSION", "ImportValidator"]
