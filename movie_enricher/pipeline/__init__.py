"""
Pipelines over the store and the oracle.

Modules
-------
enrichment : EnrichmentOrchestrator — best-effort sequential batch enrichment.
recommend  : RecommendationPipeline — preferences, candidates, ranked picks.
query      : QueryPipeline — free-form answers and movie comparisons.
"""
