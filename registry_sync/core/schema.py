"""
Canonical value sets for registry records.

Records themselves travel as plain dicts so unknown fields survive
sanitization and merge; these enums fix the wire values.
"""

from enum import Enum


class RelationshipType(str, Enum):
    """Role of a resident within the household."""
    HEAD = "Head"
    SPOUSE = "Spouse"
    CHILD = "Child"
    PARENT = "Parent"
    GRANDPARENT = "Grandparent"
    GRANDCHILD = "Grandchild"
    SIBLING = "Sibling"
    UNCLE_AUNT = "Uncle/Aunt"
    NEPHEW_NIECE = "Nephew/Niece"
    STEPCHILD = "Stepchild"
    OTHER = "Other"


class AgentRole(str, Enum):
    ADMIN = "Admin"
    OPERATOR = "Operator"


class SystemMode(str, Enum):
    """Operating mode of a device: consolidating server or field station."""
    SERVER = "SERVER_CENTRAL"
    STATION = "COLLECTION_STATION"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    BACKUP = "BACKUP"
    GENERATE_KEY = "GENERATE_KEY"
    SYNC = "SYNC"


class AuditTarget(str, Enum):
    RESIDENT = "RESIDENT"
    AGENT = "AGENT"
    SYSTEM = "SYSTEM"
    TERRITORY = "TERRITORY"
    LICENSE = "LICENSE"


class BackupFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Top-level bundle keys holding record collections
COLLECTION_KEYS = ("agents", "residents", "logs", "territories")

# Keys making up the local registry state (a bundle without version/timestamp)
STATE_KEYS = ("institution",) + COLLECTION_KEYS + ("config",)
