"""auditkb — knowledge-base ingestion for the audit assistant."""
