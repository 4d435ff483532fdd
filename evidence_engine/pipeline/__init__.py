"""Caller-side orchestration around the stateless verification engine.

- EvidencePipeline: cache lookup -> shared in-flight verification -> save
"""

from evidence_engine.pipeline.evidence_pipeline import EvidencePipeline

__all__ = ["EvidencePipeline"]
