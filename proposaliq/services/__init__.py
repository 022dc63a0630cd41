"""Services for the ProposalIQ backend."""

from .entity_store import EntityStore, get_entity_store
from .file_storage import FileStorage, get_file_storage
from .llm_client import LLMClient, get_llm_client
from .cache import ParseCache, get_parse_cache
from .proposal_parser import ProposalParser, get_proposal_parser
from .context_builder import ContextBuilder, get_context_builder
from .proposal_writer import ProposalWriter, get_proposal_writer
from .compliance_mapper import ComplianceMapper, get_compliance_mapper
from .data_call_service import DataCallService, get_data_call_service
from .timeline_planner import TimelinePlanner, get_timeline_planner
from .document_exporter import DocumentExporter, get_document_exporter
from .resource_service import ResourceService, get_resource_service
from .past_performance import PastPerformanceParser, get_past_performance_parser

__all__ = [
    "EntityStore",
    "get_entity_store",
    "FileStorage",
    "get_file_storage",
    "LLMClient",
    "get_llm_client",
    "ParseCache",
    "get_parse_cache",
    "ProposalParser",
    "get_proposal_parser",
    "ContextBuilder",
    "get_context_builder",
    "ProposalWriter",
    "get_proposal_writer",
    "ComplianceMapper",
    "get_compliance_mapper",
    "DataCallService",
    "get_data_call_service",
    "TimelinePlanner",
    "get_timeline_planner",
    "DocumentExporter",
    "get_document_exporter",
    "ResourceService",
    "get_resource_service",
    "PastPerformanceParser",
    "get_past_performance_parser",
]
