"""
Advisor Orchestrator - Multi-Advisor Consultation with Provider Failover

Turns one question plus a set of advisor profiles into one answer per
advisor, using live model providers with retry and failover when they are
available and deterministic persona templates when they are not.
"""

__version__ = "0.1.0"
__author__ = "Auto Coder Multi Agents"

from advisor_orchestrator.core.service import ConsultationResult, ConsultationService
from advisor_orchestrator.core.failover import FailoverOrchestrator
from advisor_orchestrator.core.models import AdvisorProfile, AdvisorResponse, GenerationRequest
from advisor_orchestrator.dispatch.dispatcher import ConcurrentAdvisorDispatcher
from advisor_orchestrator.providers import CallableProvider, LLMProvider, ProviderRegistry

__all__ = [
    "AdvisorProfile",
    "AdvisorResponse",
    "CallableProvider",
    "ConcurrentAdvisorDispatcher",
    "ConsultationResult",
    "ConsultationService",
    "FailoverOrchestrator",
    "GenerationRequest",
    "LLMProvider",
    "ProviderRegistry",
]
