"""Data models for the ProposalIQ backend."""

from .entities import (
    EntityRecord,
    Organization,
    User,
    Client,
    TeamingPartner,
    Proposal,
    ProposalSection,
    SolicitationDocument,
    ProposalResource,
    ProposalComment,
    ComplianceRequirement,
    WinTheme,
    Guardrails,
    AiConfiguration,
    ChecklistItem,
    DataCallRequest,
    ExportHistory,
    ENTITY_MODELS,
)
from .error import ErrorResponse
from .auth import UpdateMeRequest
from .entity_query import EntityFilterRequest
from .files import SignedUrlRequest
from .context import ParseProposalRequest, ContextBuildRequest
from .writer import GenerationParams, GenerateSectionRequest
from .compliance import AutoMapRequest, ComplianceExportFilter, RequirementMapping
from .data_call import (
    ChecklistItemInput,
    ChecklistItemPatch,
    CreateDataCallRequest,
    ValidateTokenRequest,
    UpdateItemRequest,
)
from .timeline import TimelineRequest
from .export import ExportOptions, ExportRequest, BatchExportRequest
from .resource import ResourceUploadForm
from .past_performance import PastPerformanceParseRequest

__all__ = [
    # Entities
    "EntityRecord",
    "Organization",
    "User",
    "Client",
    "TeamingPartner",
    "Proposal",
    "ProposalSection",
    "SolicitationDocument",
    "ProposalResource",
    "ProposalComment",
    "ComplianceRequirement",
    "WinTheme",
    "Guardrails",
    "AiConfiguration",
    "ChecklistItem",
    "DataCallRequest",
    "ExportHistory",
    "ENTITY_MODELS",
    # Errors
    "ErrorResponse",
    # Requests
    "UpdateMeRequest",
    "EntityFilterRequest",
    "SignedUrlRequest",
    "ParseProposalRequest",
    "ContextBuildRequest",
    "GenerationParams",
    "GenerateSectionRequest",
    "AutoMapRequest",
    "ComplianceExportFilter",
    "RequirementMapping",
    "ChecklistItemInput",
    "ChecklistItemPatch",
    "CreateDataCallRequest",
    "ValidateTokenRequest",
    "UpdateItemRequest",
    "TimelineRequest",
    "ExportOptions",
    "ExportRequest",
    "BatchExportRequest",
    "ResourceUploadForm",
    "PastPerformanceParseRequest",
]
