from ludendorff.audit.normalizer import AuditNormalizer, build_log_entry, classify
from ludendorff.audit.records import RECORD_TYPES, RecordType
from ludendorff.audit.schemas import Actor, LogEntry, Operation

__all__ = [
    "RECORD_TYPES",
    "Actor",
    "AuditNormalizer",
    "LogEntry",
    "Operation",
    "RecordType",
    "build_log_entry",
    "classify",
]
