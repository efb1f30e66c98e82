from .auditlog import AuditLog
from .client import Client
from .ref_bucket import RefBucket
