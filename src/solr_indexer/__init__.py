"""Full-rebuild Solr indexer for hierarchical content repositories."""

__version__ = "0.1.0"
