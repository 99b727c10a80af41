"""Business logic services."""

from trackhub.services.access_control import AccessDecision, AccessPolicy, evaluate_access
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.container import Container
from trackhub.services.identity import Actor, IdentityService, create_access_token
from trackhub.services.keygen import SequentialKeyGenerator, parse_key
from trackhub.services.membership import MembershipRegistry
from trackhub.services.mentions import MentionResolver, extract_mentions

__all__ = [
    "AccessDecision",
    "AccessPolicy",
    "Actor",
    "CascadeCoordinator",
    "Container",
    "IdentityService",
    "MembershipRegistry",
    "MentionResolver",
    "SequentialKeyGenerator",
    "create_access_token",
    "evaluate_access",
    "extract_mentions",
    "parse_key",
]
