"""
Unit tests for the report transition table.

Pure functions only; no database access.
"""

from __future__ import annotations

import itertools

import pytest

from accounts.models import ActorClassification
from core.domain.exceptions import InsufficientRights, InvalidArgument
from reports.models import ReportStatus
from reports.transitions import (
    ALLOWED_TRANSITIONS,
    allowed_targets,
    authorize_transition,
    can_transition,
)

S = ReportStatus
C = ActorClassification

# Reference copy of the edge table.
EXPECTED_EDGES: dict[tuple[str, str], set[str]] = {
    (S.PENDING_APPROVAL, S.ASSIGNED): {C.PUBLIC_RELATIONS_OFFICER, C.EXTERNAL_MAINTAINER},
    (S.PENDING_APPROVAL, S.REJECTED): {C.PUBLIC_RELATIONS_OFFICER},
    (S.ASSIGNED, S.IN_PROGRESS): {C.TECHNICAL_STAFF},
    (S.ASSIGNED, S.SUSPENDED): {C.TECHNICAL_STAFF},
    (S.ASSIGNED, S.RESOLVED): {C.TECHNICAL_STAFF, C.EXTERNAL_MAINTAINER},
    (S.ASSIGNED, S.REJECTED): {C.PUBLIC_RELATIONS_OFFICER},
    (S.IN_PROGRESS, S.SUSPENDED): {C.TECHNICAL_STAFF},
    (S.IN_PROGRESS, S.RESOLVED): {C.TECHNICAL_STAFF, C.EXTERNAL_MAINTAINER},
    (S.IN_PROGRESS, S.REJECTED): {C.PUBLIC_RELATIONS_OFFICER},
    (S.SUSPENDED, S.IN_PROGRESS): {C.TECHNICAL_STAFF},
    (S.SUSPENDED, S.RESOLVED): {C.TECHNICAL_STAFF, C.EXTERNAL_MAINTAINER},
    (S.SUSPENDED, S.REJECTED): {C.PUBLIC_RELATIONS_OFFICER},
}

ALL_TRIPLES = list(itertools.product(S.values, S.values, C.values))


class TestTransitionTable:

    def test_table_matches_expected_edges(self):
        assert {k: set(v) for k, v in ALLOWED_TRANSITIONS.items()} == EXPECTED_EDGES

    @pytest.mark.parametrize("current,requested,classification", ALL_TRIPLES)
    def test_every_combination(self, current, requested, classification):
        expected = classification in EXPECTED_EDGES.get((current, requested), set())
        assert can_transition(current, requested, classification) is expected

    @pytest.mark.parametrize("classification", [C.CITIZEN, C.ADMINISTRATOR])
    def test_citizens_and_administrators_have_no_edges(self, classification):
        for current, requested in itertools.product(S.values, S.values):
            assert not can_transition(current, requested, classification)

    @pytest.mark.parametrize("terminal", [S.REJECTED, S.RESOLVED])
    def test_terminal_statuses_have_no_outgoing_edges(self, terminal):
        for requested, classification in itertools.product(S.values, C.values):
            assert not can_transition(terminal, requested, classification)

    def test_external_maintainer_cannot_start_or_suspend_work(self):
        assert not can_transition(S.ASSIGNED, S.IN_PROGRESS, C.EXTERNAL_MAINTAINER)
        assert not can_transition(S.ASSIGNED, S.SUSPENDED, C.EXTERNAL_MAINTAINER)
        assert not can_transition(S.SUSPENDED, S.IN_PROGRESS, C.EXTERNAL_MAINTAINER)

    @pytest.mark.parametrize("classification", ["", "Municipal Public Relations Officer", "root"])
    def test_unknown_classification_is_denied(self, classification):
        assert not can_transition(S.PENDING_APPROVAL, S.ASSIGNED, classification)


class TestAuthorizeTransition:

    def test_allowed_edge_passes(self):
        authorize_transition(S.PENDING_APPROVAL, S.ASSIGNED, C.PUBLIC_RELATIONS_OFFICER)

    def test_denied_edge_raises_insufficient_rights(self):
        with pytest.raises(InsufficientRights):
            authorize_transition(S.ASSIGNED, S.IN_PROGRESS, C.CITIZEN)

    @pytest.mark.parametrize("requested", ["closed", "ASSIGNED", "", None])
    def test_unknown_status_raises_invalid_argument(self, requested):
        with pytest.raises(InvalidArgument):
            authorize_transition(S.PENDING_APPROVAL, requested, C.PUBLIC_RELATIONS_OFFICER)


class TestAllowedTargets:

    def test_pro_on_pending_report(self):
        assert set(allowed_targets(S.PENDING_APPROVAL, C.PUBLIC_RELATIONS_OFFICER)) == {
            S.ASSIGNED,
            S.REJECTED,
        }

    def test_technical_staff_on_in_progress_report(self):
        assert set(allowed_targets(S.IN_PROGRESS, C.TECHNICAL_STAFF)) == {
            S.SUSPENDED,
            S.RESOLVED,
        }

    def test_citizen_gets_nothing(self):
        assert allowed_targets(S.ASSIGNED, C.CITIZEN) == []
