# tests/test_concurrency.py
# 并发表态测试（乐观锁 + 重试）
#
# InMemoryApprovalRepository 在读取和写回之间让出事件循环，
# asyncio.gather 发起的表态会真正交错，产生版本冲突。

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.approval import (
    ApprovalRepository,
    ConcurrentWriteConflict,
    DecisionRecorder,
    DecisionStatus,
    PartialApprovalResolver,
    RoleKey,
)


class TestConcurrentDecisions:

    @pytest.mark.asyncio
    async def test_two_reviewers_both_recorded(self, letter_recorder, letter_repo, make_letter, actor):
        letter = await make_letter(["tpo", "dean"])

        await asyncio.gather(
            letter_recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve"),
            letter_recorder.record_decision(letter.id, actor("dean"), "dean", "approve"),
        )

        entity = await letter_repo.get_entity(letter.id)
        assert entity.approval_state.overall_status == DecisionStatus.APPROVED
        assert entity.version == 2

    @pytest.mark.asyncio
    async def test_all_eight_reviewers_at_once(self, profile_repo, registry, make_profile, actor):
        recorder = DecisionRecorder(
            profile_repo, registry, PartialApprovalResolver(registry), max_retries=len(RoleKey)
        )
        profile = await make_profile()

        await asyncio.gather(*[
            recorder.record_decision(profile.id, actor(role), role, "approve")
            for role in registry.profile_reviewers
        ])

        entity = await profile_repo.get_entity(profile.id)
        assert entity.version == len(RoleKey)
        assert entity.approval_state.overall_status == DecisionStatus.APPROVED
        assert all(
            entity.approval_state.record_for(role).status == DecisionStatus.APPROVED
            for role in RoleKey
        )

    @pytest.mark.asyncio
    async def test_concurrent_approve_and_reject(self, letter_recorder, letter_repo, make_letter, actor):
        letter = await make_letter(["tpo", "dean"])

        await asyncio.gather(
            letter_recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve"),
            letter_recorder.record_decision(letter.id, actor("dean"), "dean", "reject", comment="budget unclear"),
        )

        state = (await letter_repo.get_entity(letter.id)).approval_state
        assert state.record_for(RoleKey.TPO).status == DecisionStatus.APPROVED
        assert state.record_for(RoleKey.DEAN).status == DecisionStatus.REJECTED
        assert state.overall_status == DecisionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_retry_exhaustion_surfaces_conflict(self, letter_repo, registry, make_letter, actor):
        """只允许一次尝试时，并发中的后写者得到 ConcurrentWriteConflict"""
        recorder = DecisionRecorder(letter_repo, registry, max_retries=1)
        letter = await make_letter(["tpo", "dean"])

        results = await asyncio.gather(
            recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve"),
            recorder.record_decision(letter.id, actor("dean"), "dean", "approve"),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConcurrentWriteConflict)]
        assert len(conflicts) == 1

        entity = await letter_repo.get_entity(letter.id)
        assert entity.version == 1
        assert entity.approval_state.overall_status == DecisionStatus.PENDING


class TestRetryLoop:
    """重试次数由 max_retries 决定"""

    @pytest.fixture
    def conflicting_repo(self, letter_repo):
        repo = AsyncMock(spec=ApprovalRepository)
        repo.get_entity = letter_repo.get_entity
        repo.update_approval_state = AsyncMock(side_effect=ConcurrentWriteConflict("x", 0))
        return repo

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, conflicting_repo, registry, make_letter, actor):
        letter = await make_letter(["tpo"])
        recorder = DecisionRecorder(conflicting_repo, registry, max_retries=4)

        with pytest.raises(ConcurrentWriteConflict):
            await recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve")

        assert conflicting_repo.update_approval_state.await_count == 4

    @pytest.mark.asyncio
    async def test_zero_retries_still_tries_once(self, conflicting_repo, registry, make_letter, actor):
        letter = await make_letter(["tpo"])
        recorder = DecisionRecorder(conflicting_repo, registry, max_retries=0)

        with pytest.raises(ConcurrentWriteConflict):
            await recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve")

        assert conflicting_repo.update_approval_state.await_count == 1

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_conflict(self, letter_repo, registry, make_letter, actor):
        letter = await make_letter(["tpo"])
        real_update = letter_repo.update_approval_state

        repo = AsyncMock(spec=ApprovalRepository)
        repo.get_entity = letter_repo.get_entity
        # 第一次冲突，第二次转发给真实存储
        calls = []

        async def update(entity_id, mutator):
            calls.append(entity_id)
            if len(calls) == 1:
                raise ConcurrentWriteConflict(entity_id, 0)
            return await real_update(entity_id, mutator)

        repo.update_approval_state = AsyncMock(side_effect=update)
        recorder = DecisionRecorder(repo, registry, max_retries=2)

        state = await recorder.record_decision(letter.id, actor("tpo"), "tpo", "approve")

        assert state.overall_status == DecisionStatus.APPROVED
        assert len(calls) == 2
