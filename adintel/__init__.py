"""Multi-source ad intelligence: aggregation, enrichment and relevance scoring."""

__version__ = "0.1.0"
