from app.ingestion.service import Aggregator

__all__ = ["Aggregator"]
