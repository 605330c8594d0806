"""Central constants shared across the repository and Solr sides of the indexer."""

from typing import Final

# Repository node types.
NT_FOLDER: Final[str] = "hippostd:folder"
NT_HANDLE: Final[str] = "hippo:handle"
NT_CONFIGURATION: Final[str] = "solr:configuration"

# Repository property names.
P_AVAILABILITY: Final[str] = "hippo:availability"
P_UUID: Final[str] = "jcr:uuid"
P_CONFIG_NODE_TYPES: Final[str] = "solr:node"
P_CONFIG_PROPERTIES: Final[str] = "solr:property"

# Availability marker for the published variant.
AVAILABILITY_LIVE: Final[str] = "live"

PATH_SEPARATOR: Final[str] = "/"

# Solr.
QUERY_ALL: Final[str] = "*:*"
DYNAMIC_FIELD_PREFIX: Final[str] = "dynamic_"
