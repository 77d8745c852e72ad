from agentloop.specialists.base import SpecialistAgent
from agentloop.specialists.coder import CoderAgent
from agentloop.specialists.documenter import DocumenterAgent
from agentloop.specialists.planner import PlannerAgent
from agentloop.specialists.reviewer import REVIEW_FALLBACK_FEEDBACK, ReviewerAgent

__all__ = [
    "REVIEW_FALLBACK_FEEDBACK",
    "CoderAgent",
    "DocumenterAgent",
    "PlannerAgent",
    "ReviewerAgent",
    "SpecialistAgent",
]
