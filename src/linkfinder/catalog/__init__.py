"""Classification and aggregation of verified hits"""
from .classifier import classify, PerSeedCatalog, SequenceGroup
from .aggregator import aggregate, Catalog, order_seeds, recency_key
