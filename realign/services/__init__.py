"""Relabeling service (server side) and the pipeline's client for it."""
from realign.services.relabel_client import RelabelClient
from realign.services.relabel_service import relabel_segments
from realign.services.response_parser import ExtractionResult, extract_json_array

__all__ = ["ExtractionResult", "RelabelClient", "extract_json_array", "relabel_segments"]
