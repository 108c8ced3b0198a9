"""
Database naming rules and index definitions
"""

from docstore.models.collections import COLLECTIONS

# Database name prefix for tenants (MONGODB_TENANT_PREFIX overrides)
TENANT_PREFIX = ""

# MongoDB limits
MAX_DATABASE_NAME_BYTES = 63
MAX_COLLECTION_NAME_LENGTH = 120
TENANT_FORBIDDEN_CHARS = set('/\\. "$*<>:|?\x00')
COLLECTION_FORBIDDEN_CHARS = set("$\x00")


# Index definitions: (collection, index name, field, unique)
# Applied once per tenant namespace on first resolution
INDEX_DEFINITIONS = [
    # one account per email inside a tenant
    (COLLECTIONS.USERS, "idx_email", "email", True),
    # session lookup by token
    (COLLECTIONS.USERS, "idx_tokens_token", "tokens.token", False),
]
