# tests/test_approval_state.py
# ApprovalState 合并与序列化测试

from datetime import datetime, timedelta

from app.approval import ApprovalState, DecisionRecord, DecisionStatus, RoleKey


NOW = datetime(2025, 3, 1, 10, 0, 0)


class TestWithDecision:
    """with_decision() 合并规则"""

    def test_overwrites_same_role_without_history(self):
        state = ApprovalState.initial([RoleKey.TPO, RoleKey.DEAN])
        state = state.with_decision(
            RoleKey.TPO, DecisionRecord(status=DecisionStatus.REJECTED, comment="x", decided_at=NOW)
        )
        state = state.with_decision(
            RoleKey.TPO, DecisionRecord(status=DecisionStatus.APPROVED, decided_at=NOW + timedelta(minutes=1))
        )

        assert len(state.records) == 2
        assert state.record_for(RoleKey.TPO).status == DecisionStatus.APPROVED
        assert state.record_for(RoleKey.TPO).comment is None

    def test_older_decision_does_not_replace_newer(self):
        state = ApprovalState.initial([RoleKey.TPO])
        newer = DecisionRecord(status=DecisionStatus.APPROVED, decided_at=NOW)
        older = DecisionRecord(status=DecisionStatus.REJECTED, comment="late", decided_at=NOW - timedelta(seconds=5))

        state = state.with_decision(RoleKey.TPO, newer)
        assert state.with_decision(RoleKey.TPO, older).record_for(RoleKey.TPO) == newer

    def test_original_state_is_unchanged(self):
        state = ApprovalState.initial([RoleKey.DEAN])
        state.with_decision(RoleKey.DEAN, DecisionRecord(status=DecisionStatus.APPROVED))
        assert state.record_for(RoleKey.DEAN).status == DecisionStatus.PENDING

    def test_record_for_unknown_role_is_pending(self):
        state = ApprovalState.initial([RoleKey.DEAN])
        assert state.record_for(RoleKey.TPO).status == DecisionStatus.PENDING


class TestRejectionReasons:

    def test_format_uses_upper_case_role(self):
        state = ApprovalState.initial([RoleKey.TPO, RoleKey.DEAN])
        state = state.with_decision(
            RoleKey.DEAN, DecisionRecord(status=DecisionStatus.REJECTED, comment="budget unclear")
        )
        assert state.rejection_reasons() == ["DEAN: budget unclear"]

    def test_follows_required_order(self):
        state = ApprovalState.initial([RoleKey.CSE_HOD, RoleKey.TPO])
        for role in (RoleKey.TPO, RoleKey.CSE_HOD):
            state = state.with_decision(
                role, DecisionRecord(status=DecisionStatus.REJECTED, comment=role.value)
            )
        assert state.rejection_reasons() == ["CSE_HOD: cse_hod", "TPO: tpo"]


class TestSerialization:
    """to_dict() / from_dict()"""

    def test_round_trip_keeps_records(self):
        required = (RoleKey.TPO, RoleKey.DEAN)
        state = ApprovalState.initial(required).with_decision(
            RoleKey.TPO,
            DecisionRecord(
                status=DecisionStatus.APPROVED,
                decided_at=NOW,
                decider_actor_id="u-1",
                approved_member_ids=frozenset({"m2", "m1"}),
            ),
        )
        data = state.to_dict()

        assert data["overall_status"] == "pending"
        assert data["records"]["tpo"]["approved_member_ids"] == ["m1", "m2"]
        assert ApprovalState.from_dict(data, required) == state

    def test_stored_overall_status_is_ignored(self):
        data = {
            "overall_status": "approved",
            "records": {"tpo": {"status": "pending"}, "dean": {"status": "approved"}},
        }
        state = ApprovalState.from_dict(data, [RoleKey.TPO, RoleKey.DEAN])
        assert state.overall_status == DecisionStatus.PENDING

    def test_missing_required_roles_become_pending(self):
        state = ApprovalState.from_dict({"records": {"tpo": {"status": "approved"}}}, tuple(RoleKey))
        assert set(state.records) == set(RoleKey)
        assert state.record_for(RoleKey.DIRECTOR).status == DecisionStatus.PENDING

    def test_none_and_garbage_are_treated_as_empty(self):
        assert ApprovalState.from_dict(None, [RoleKey.TPO]).overall_status == DecisionStatus.PENDING
        state = ApprovalState.from_dict({"records": {"tpo": "approved", "nobody": {}}}, [RoleKey.TPO])
        assert list(state.records) == [RoleKey.TPO]

    def test_legacy_flat_format(self):
        """扁平格式 + 驼峰键 + comments/updated_at 旧字段名"""
        data = {
            "hsHod": {"status": "rejected", "comments": "missing proof", "updated_at": "2025-03-01T10:00:00Z"},
            "tpo": {"status": "approved", "official_id": "official-7"},
            "overall_status": "approved",
        }
        state = ApprovalState.from_dict(data, [RoleKey.HS_HOD, RoleKey.TPO])

        hs = state.record_for(RoleKey.HS_HOD)
        assert hs.status == DecisionStatus.REJECTED
        assert hs.comment == "missing proof"
        assert hs.decided_at == NOW
        assert state.record_for(RoleKey.TPO).decider_actor_id == "official-7"
        assert state.overall_status == DecisionStatus.REJECTED

    def test_unknown_status_reads_as_pending(self):
        state = ApprovalState.from_dict({"records": {"dean": {"status": "maybe"}}}, [RoleKey.DEAN])
        assert state.record_for(RoleKey.DEAN).status == DecisionStatus.PENDING

    def test_member_ids_dropped_unless_approved(self):
        data = {"records": {"dean": {"status": "rejected", "comment": "no", "approved_member_ids": ["m1"]}}}
        state = ApprovalState.from_dict(data, [RoleKey.DEAN])
        assert state.record_for(RoleKey.DEAN).approved_member_ids == frozenset()
