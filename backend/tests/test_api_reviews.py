# tests/test_api_reviews.py
# 审核 / 档案 API 测试
#
# 依赖覆盖（见 conftest.py 的 client / login）：
# - get_approval_service → 内存存储版服务
# - get_current_user     → 指定角色的假用户
# 不启动 lifespan，不连接数据库。

import asyncio

import pytest

from app.approval import DecisionStatus, EntityKind


class TestSubmitDecision:

    def test_approve(self, client, login, make_letter):
        letter = asyncio.run(make_letter(["tpo", "dean"]))
        login("tpo")

        response = client.post(
            f"/api/reviews/letter/{letter.id}/decision",
            json={"role": "tpo", "action": "approve"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overall_status"] == "pending"
        assert [r["role"] for r in data["records"]] == ["tpo", "dean"]
        assert data["records"][0]["status"] == "approved"
        assert data["records"][0]["decider_actor_id"] == "user-tpo"

    def test_reject_without_comment(self, client, login, make_letter):
        letter = asyncio.run(make_letter(["dean"]))
        login("dean")

        response = client.post(
            f"/api/reviews/letter/{letter.id}/decision",
            json={"role": "dean", "action": "reject", "comment": "  "},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "comment_required"

    @pytest.mark.parametrize("logged_in,claimed", [
        ("cse_hod", "cse_hod"),     # 不在收件人中
        ("tpo", "dean"),            # 角色不一致
        ("tpo", "registrar"),       # 未知席位
    ])
    def test_unauthorized_roles_share_one_message(self, client, login, make_letter, logged_in, claimed):
        letter = asyncio.run(make_letter(["tpo", "dean"]))
        login(logged_in)

        response = client.post(
            f"/api/reviews/letter/{letter.id}/decision",
            json={"role": claimed, "action": "approve"},
        )

        assert response.status_code == 403
        assert response.json() == {"detail": "无权审核该对象", "code": "not_authorized"}

    def test_unknown_entity(self, client, login):
        login("tpo")
        response = client.post(
            "/api/reviews/profile/profile-404/decision",
            json={"role": "tpo", "action": "approve"},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "entity_not_found"

    def test_unknown_kind(self, client, login):
        login("tpo")
        response = client.post("/api/reviews/memo/x/decision", json={"role": "tpo", "action": "approve"})
        assert response.status_code == 422

    def test_invalid_members(self, client, login, make_letter):
        letter = asyncio.run(make_letter(["cse_hod"], {"CSE": ["m1"], "ECE": ["m2"]}))
        login("cse_hod")

        response = client.post(
            f"/api/reviews/letter/{letter.id}/decision",
            json={"role": "cse_hod", "action": "approve", "approved_member_ids": ["m2"]},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_approved_members"

    def test_requires_login(self, client):
        response = client.post(
            "/api/reviews/letter/x/decision",
            json={"role": "tpo", "action": "approve"},
        )
        assert response.status_code == 401


class TestStatusAndWorkspace:

    def test_aggregate_status(self, client, login, approval_service, make_profile, make_letter, actor):
        club = asyncio.run(make_profile(owner_id="student-1"))
        letter = asyncio.run(make_letter(["tpo", "dean"], owner_id=club.id))
        asyncio.run(approval_service.submit_decision(
            EntityKind.LETTER, letter.id, actor("dean"), "dean", "reject", comment="budget unclear"
        ))
        login("club_leader", user_id="student-1")

        response = client.get(f"/api/reviews/letter/{letter.id}/status")

        assert response.status_code == 200
        assert response.json() == {
            "entity_id": letter.id,
            "kind": "letter",
            "overall_status": "rejected",
            "per_role_statuses": {"tpo": "pending", "dean": "rejected"},
            "rejection_reasons": ["DEAN: budget unclear"],
        }

    def test_workspace_for_hod(self, client, login, approval_service, make_profile, actor):
        cse = asyncio.run(make_profile(department="CSE", owner_id="s1", club_name="Robotics"))
        asyncio.run(make_profile(department="ECE", owner_id="s2"))
        asyncio.run(approval_service.submit_decision(
            EntityKind.PROFILE, cse.id, actor("cse_hod"), "cse_hod", "approve"
        ))
        login("cse_hod")

        response = client.get("/api/reviews/profile", params={"department": "ECE"})

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "cse_hod"
        assert data["department"] == "CSE"
        assert data["pending"] == []
        assert [item["id"] for item in data["approved"]] == [cse.id]
        assert data["approved"][0]["title"] == "Robotics"
        assert data["approved"][0]["my_status"] == DecisionStatus.APPROVED.value

    def test_workspace_forbidden_for_club_leader(self, client, login):
        login("club_leader")
        assert client.get("/api/reviews/letter").status_code == 403

    def test_letter_workspace_ignores_hod_department(self, client, login, make_letter):
        no_members = asyncio.run(make_letter(["cse_hod", "tpo"]))
        ece_only = asyncio.run(make_letter(["cse_hod"], {"ECE": ["m2"]}))
        login("cse_hod")

        data = client.get("/api/reviews/letter").json()

        assert data["department"] is None
        assert {item["id"] for item in data["pending"]} == {no_members.id, ece_only.id}

    def test_member_approvals(self, client, login, approval_service, make_letter, actor):
        letter = asyncio.run(make_letter(["cse_hod", "dean"], {"CSE": ["m1", "m2"]}))
        asyncio.run(approval_service.submit_decision(
            EntityKind.LETTER, letter.id, actor("cse_hod"), "cse_hod", "approve",
            approved_member_ids=["m1"],
        ))
        login("dean")

        response = client.get(f"/api/reviews/letter/{letter.id}/members")

        assert response.status_code == 200
        assert response.json()["members"] == {"m1": ["cse_hod"], "m2": []}


class TestProfiles:

    PAYLOAD = {
        "full_name": "Asha Rao",
        "roll_number": "21R01A0501",
        "department": "cse",
        "club_name": "Coding Club",
    }

    def test_onboard_and_read_back(self, client, login):
        login("club_leader", user_id="student-1", email="asha@cmrithyderabad.edu.in")

        response = client.post("/api/profiles", json=self.PAYLOAD)
        assert response.status_code == 201
        created = response.json()
        assert created["department"] == "CSE"
        assert created["approval"]["overall_status"] == "pending"
        assert len(created["approval"]["records"]) == 8

        me = client.get("/api/profiles/me")
        assert me.status_code == 200
        assert me.json()["id"] == created["id"]

        assert client.post("/api/profiles", json=self.PAYLOAD).status_code == 409

    def test_wrong_email_domain(self, client, login):
        login("club_leader", user_id="student-2", email="asha@gmail.com")
        assert client.post("/api/profiles", json=self.PAYLOAD).status_code == 400

    def test_unknown_department(self, client, login):
        login("club_leader", user_id="student-3", email="x@cmrithyderabad.edu.in")
        response = client.post("/api/profiles", json=dict(self.PAYLOAD, department="MECH"))
        assert response.status_code == 422

    def test_no_profile_yet(self, client, login):
        login("club_leader", user_id="student-4")
        assert client.get("/api/profiles/me").status_code == 404


class TestStatusVisibility:
    """汇总状态和成员认可情况与信函详情使用同一条可见性规则"""

    @pytest.fixture
    def rejected_letter(self, approval_service, make_profile, make_letter, actor):
        club = asyncio.run(make_profile(owner_id="student-1"))
        letter = asyncio.run(make_letter(["tpo"], {"CSE": ["m1"]}, owner_id=club.id))
        asyncio.run(approval_service.submit_decision(
            EntityKind.LETTER, letter.id, actor("tpo"), "tpo", "reject", comment="budget unclear"
        ))
        return letter

    @pytest.mark.parametrize("path", ["status", "members"])
    def test_other_club_leader_forbidden(self, client, login, make_profile, rejected_letter, path):
        asyncio.run(make_profile(owner_id="stranger", club_name="Drama Club"))
        login("club_leader", user_id="stranger")

        response = client.get(f"/api/reviews/letter/{rejected_letter.id}/{path}")

        assert response.status_code == 403
        assert "budget unclear" not in response.text

    @pytest.mark.parametrize("path", ["status", "members"])
    def test_reviewer_outside_recipients_forbidden(self, client, login, rejected_letter, path):
        login("director")
        assert client.get(f"/api/reviews/letter/{rejected_letter.id}/{path}").status_code == 403

    @pytest.mark.parametrize("role,user_id", [("club_leader", "student-1"), ("tpo", None), ("admin", None)])
    def test_allowed_viewers(self, client, login, rejected_letter, role, user_id):
        login(role, user_id=user_id)

        for path in ("status", "members"):
            assert client.get(f"/api/reviews/letter/{rejected_letter.id}/{path}").status_code == 200

    def test_profile_status_for_any_reviewer(self, client, login, make_profile):
        profile = asyncio.run(make_profile(owner_id="student-1"))

        login("director")
        assert client.get(f"/api/reviews/profile/{profile.id}/status").status_code == 200

        login("club_leader", user_id="stranger")
        assert client.get(f"/api/reviews/profile/{profile.id}/status").status_code == 403
