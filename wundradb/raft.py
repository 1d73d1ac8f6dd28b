"""State and message handling for a single Raft consensus node."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

ELECTION_TIMEOUT = 0.3
HEARTBEAT_INTERVAL = 0.1


class NodeState(Enum):
    FOLLOWER = "Follower"
    CANDIDATE = "Candidate"
    LEADER = "Leader"


@dataclass(frozen=True)
class LogEntry:
    """A replicated command at a position in the log."""

    term: int
    index: int
    command: bytes
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class VoteRequest:
    term: int
    candidate_id: str
    last_log_index: int
    last_log_term: int


@dataclass(frozen=True)
class VoteResponse:
    term: int
    vote_granted: bool


@dataclass(frozen=True)
class AppendEntriesRequest:
    term: int
    leader_id: str
    prev_log_index: int
    prev_log_term: int
    entries: List[LogEntry] = field(default_factory=list)
    leader_commit: int = 0


@dataclass(frozen=True)
class AppendEntriesResponse:
    term: int
    success: bool
    match_index: int


class RaftNode:
    """One member of a Raft cluster; times are in seconds."""

    def __init__(self, node_id: str, peers: List[str]) -> None:
        self.id = node_id
        self.state = NodeState.FOLLOWER
        self.current_term = 0
        self.voted_for: Optional[str] = None
        self.log: List[LogEntry] = []
        self.commit_index = 0
        self.last_applied = 0
        self.peers = list(peers)
        self.leader_id: Optional[str] = None
        self.next_index: Dict[str, int] = {}
        self.match_index: Dict[str, int] = {}
        self.last_heartbeat = time.monotonic()
        self.election_timeout = ELECTION_TIMEOUT
        self.heartbeat_interval = HEARTBEAT_INTERVAL
        self.commands: asyncio.Queue = asyncio.Queue()

    def is_leader(self) -> bool:
        return self.state is NodeState.LEADER

    def is_follower(self) -> bool:
        return self.state is NodeState.FOLLOWER

    def start_election(self) -> None:
        """Move to the next term as a candidate voting for itself."""
        self.current_term += 1
        self.state = NodeState.CANDIDATE
        self.voted_for = self.id
        self.last_heartbeat = time.monotonic()

    def become_leader(self) -> None:
        """Take leadership and reset replication progress for every peer."""
        self.state = NodeState.LEADER
        self.leader_id = self.id
        next_index = self.last_log_index() + 1
        for peer in self.peers:
            self.next_index[peer] = next_index
            self.match_index[peer] = 0

    def last_log_index(self) -> int:
        return self.log[-1].index if self.log else 0

    def last_log_term(self) -> int:
        return self.log[-1].term if self.log else 0

    def handle_vote_request(self, req: VoteRequest) -> VoteResponse:
        """Decide whether to vote for the requesting candidate."""
        if req.term > self.current_term:
            self.current_term = req.term
            self.voted_for = None
            self.state = NodeState.FOLLOWER

        granted = (
            req.term == self.current_term
            and self.voted_for in (None, req.candidate_id)
            and self._is_log_up_to_date(req.last_log_index, req.last_log_term)
        )
        if granted:
            self.voted_for = req.candidate_id
        return VoteResponse(term=self.current_term, vote_granted=granted)

    def handle_append_entries(self, req: AppendEntriesRequest) -> AppendEntriesResponse:
        """Accept a heartbeat from a leader whose term is not stale."""
        if req.term < self.current_term:
            return AppendEntriesResponse(
                term=self.current_term, success=False, match_index=0
            )
        self.leader_id = req.leader_id
        self.state = NodeState.FOLLOWER
        self.last_heartbeat = time.monotonic()
        self.current_term = req.term
        return AppendEntriesResponse(
            term=self.current_term, success=True, match_index=self.last_log_index()
        )

    def _is_log_up_to_date(self, index: int, term: int) -> bool:
        my_term = self.last_log_term()
        return term > my_term or (term == my_term and index >= self.last_log_index())