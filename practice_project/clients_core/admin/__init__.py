from .auditlog import AuditLogAdmin
from .client import ClientAdmin
from .ReadOnly import ReadOnlyAdmin
from .ref_bucket import RefBucketAdmin
