"""Common constants shared across azminrole modules."""

UNKNOWN = "Unknown"

# Operations under these namespaces would let the generated role re-grant or modify roles.
DEFAULT_DENYLIST_PREFIXES = frozenset({"Microsoft.Authorization"})

DEFAULT_ROLE_NAME = "Terraform Demo App Deployer - Generated"
DEFAULT_ROLE_DESCRIPTION = "Minimal permissions for demo app deployment - Generated from activity logs"

CSV_HEADER = (
    "Operation",
    "Count",
    "Resource Provider",
    "Resource Type",
    "First Seen",
    "Last Seen",
)

SUMMARY_TOP_OPERATIONS = 20

RECOMMENDED_ACTIONS = (
    "Review the operations list to identify essential vs. optional permissions",
    "Group permissions by resource provider for custom role creation",
    "Consider resource-specific scopes to further limit access",
    "Test minimal permission set with a subset of operations",
)

ARTIFACT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
