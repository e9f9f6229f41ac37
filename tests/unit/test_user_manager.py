"""Unit tests for identity-provider user sync"""

import pytest

from report_service.core.exceptions import ProfileConflict


@pytest.mark.unit
class TestUserManager:
    """First sign-in creates, later sign-ins resync profile fields"""

    async def test_first_sign_in_creates_user(self, user_manager, db_session):
        user = await user_manager.sync_user(
            google_id="sub-1",
            email="ada@example.com",
            username="Ada",
            avatar_url="https://avatars.test/ada.png",
            db=db_session
        )

        assert user.user_id
        assert user.google_id == "sub-1"
        assert await user_manager.resolve_caller_id("sub-1", db_session) == user.user_id

    async def test_later_sign_in_resyncs_name_and_avatar_only(self, user_manager, db_session):
        first = await user_manager.sync_user("sub-1", "ada@example.com", "Ada", "a.png", db_session)
        second = await user_manager.sync_user("sub-1", "other@example.com", "Ada L.", "b.png", db_session)

        assert second.user_id == first.user_id
        assert second.username == "Ada L."
        assert second.avatar_url == "b.png"
        assert second.email == "ada@example.com"

    async def test_unknown_or_missing_subject_resolves_to_none(self, user_manager, db_session):
        assert await user_manager.resolve_caller_id("nobody", db_session) is None
        assert await user_manager.resolve_caller_id(None, db_session) is None

    async def test_resync_onto_taken_username_conflicts(self, user_manager, db_session, owner, stranger):
        """A rejected resync leaves both profiles as they were"""
        with pytest.raises(ProfileConflict):
            await user_manager.sync_user(
                "google-stranger", "stranger@example.com", owner.username, stranger.avatar_url, db_session
            )

        assert await user_manager.resolve_caller_id("google-stranger", db_session) == stranger.user_id
        unchanged = await user_manager.sync_user(
            "google-stranger", "stranger@example.com", stranger.username, stranger.avatar_url, db_session
        )
        assert unchanged.username == "Someone Else"

    async def test_first_sign_in_with_taken_email_conflicts(self, user_manager, db_session, owner):
        with pytest.raises(ProfileConflict):
            await user_manager.sync_user("google-new", owner.email, "Fresh Name", "c.png", db_session)

        assert await user_manager.resolve_caller_id("google-new", db_session) is None
