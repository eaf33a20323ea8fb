"""Enumeration types and protocol constants for present-proof."""

from enum import Enum


class StateName(str, Enum):
    """Wire names of the protocol states."""
    # Common states
    START = "start"
    ABANDONING = "abandoning"
    DONE = "done"
    NOOP = "noop"
    # Verifier states
    REQUEST_SENT = "request-sent"
    PRESENTATION_RECEIVED = "presentation-received"
    PROPOSAL_RECEIVED = "proposal-received"
    # Prover states
    REQUEST_RECEIVED = "request-received"
    PRESENTATION_SENT = "presentation-sent"
    PROPOSAL_SENT = "proposal-sent"


class MessageType(str, Enum):
    """Present-proof 2.0 message type URIs."""
    PROPOSE_PRESENTATION = "https://didcomm.org/present-proof/2.0/propose-presentation"
    REQUEST_PRESENTATION = "https://didcomm.org/present-proof/2.0/request-presentation"
    PRESENTATION = "https://didcomm.org/present-proof/2.0/presentation"
    ACK = "https://didcomm.org/present-proof/2.0/ack"
    PROBLEM_REPORT = "https://didcomm.org/present-proof/2.0/problem-report"


class ProblemCode(str, Enum):
    """Problem-report codes emitted by the engine."""
    INTERNAL = "internal"
    REJECTED = "rejected"


class AckStatus(str, Enum):
    """Acknowledgment status values."""
    OK = "OK"
    PENDING = "PENDING"
