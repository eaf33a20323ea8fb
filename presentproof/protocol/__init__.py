"""Protocol engine package."""

from presentproof.protocol.driver import ConversationDriver, Transition, abandon_code
from presentproof.protocol.metadata import ConversationMetadata
from presentproof.protocol.service import (
    ContinueOptions,
    ConversationStore,
    PresentProofService,
    next_state,
)
from presentproof.protocol.states import (
    CODE_INTERNAL_ERROR,
    CODE_REJECTED_ERROR,
    VALID_TRANSITIONS,
    Abandoning,
    Action,
    Done,
    NoOp,
    PresentationReceived,
    PresentationSent,
    ProposalReceived,
    ProposalSent,
    RequestReceived,
    RequestSent,
    Start,
    State,
    zero_action,
)

__all__ = [
    "CODE_INTERNAL_ERROR",
    "CODE_REJECTED_ERROR",
    "VALID_TRANSITIONS",
    "Abandoning",
    "Action",
    "ContinueOptions",
    "ConversationDriver",
    "ConversationMetadata",
    "ConversationStore",
    "Done",
    "NoOp",
    "PresentProofService",
    "PresentationReceived",
    "PresentationSent",
    "ProposalReceived",
    "ProposalSent",
    "RequestReceived",
    "RequestSent",
    "Start",
    "State",
    "Transition",
    "abandon_code",
    "next_state",
    "zero_action",
]
