"""Resolving platform identities to users and merging duplicate users.

A user is found by the identity email of a platform profile, either their
primary email or an alias recorded by an earlier merge. Linking a platform
account whose identity already belongs to someone else raises
``MergeRequiredError``; the caller then picks the surviving user and calls
``perform_chosen_merge``.
"""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING, Final

from mixtape.domain.errors import (
    InvalidMergeTargetError,
    InvalidPlatformProfileError,
    MergeRequiredError,
    UserNotFoundError,
)
from mixtape.domain.model import (
    Platform,
    User,
    UserEmailAlias,
    UserMusicAccount,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from mixtape.domain.ports import (
        MixtapeRepositories,
        PlatformProfile,
        TokenGrant,
        UnitOfWorkFactory,
    )

log = getLogger(__name__)

SYNTHETIC_EMAIL_DOMAIN: Final[str] = "mixtape.internal"
_APPLE_MUSIC_USER_ID = re.compile(r"^[A-Za-z0-9._\-]+$")


def platform_identity_email(profile: PlatformProfile) -> str:
    """Email that identifies the person behind a platform profile.

    Apple Music exposes no email, so a stable synthetic address is derived from
    the platform user id.
    """

    if profile.platform == Platform.APPLE_MUSIC:
        user_id = profile.platform_user_id.strip()
        if not _APPLE_MUSIC_USER_ID.match(user_id):
            raise InvalidPlatformProfileError(f"Invalid Apple Music user id: {user_id!r}")
        return f"apple_music_{user_id}@{SYNTHETIC_EMAIL_DOMAIN}"

    if not profile.email or "@" not in profile.email:
        raise InvalidPlatformProfileError(f"{profile.platform} profile has no usable email")
    return profile.email.strip().lower()


def _resolve_identity(repos: MixtapeRepositories, email: str) -> User | None:
    user = repos.users.get_by_email(email)
    if user is not None:
        return user
    alias = repos.email_aliases.get_by_email(email)
    if alias is None:
        return None
    return repos.users.get(alias.user_id)


def _upsert_account(
    repos: MixtapeRepositories,
    *,
    user_id: UUID,
    platform: Platform,
    grant: TokenGrant,
    now: datetime,
) -> UserMusicAccount:
    account = repos.music_accounts.get(user_id, platform)
    if account is None:
        account = UserMusicAccount(
            user_id=user_id,
            platform=platform,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=grant.expires_at,
            updated_at=now,
        )
        repos.music_accounts.add(account)
        return account
    account.store_grant(
        access_token=grant.access_token,
        refresh_token=grant.refresh_token,
        expires_at=grant.expires_at,
        now=now,
    )
    return account


class IdentityMergeCoordinator:
    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._clock = clock

    def find_user_by_identity(self, email: str) -> User | None:
        with self._uow_factory() as uow:
            return _resolve_identity(uow.repositories, email.strip().lower())

    def sign_in_with_platform(self, profile: PlatformProfile, grant: TokenGrant) -> User:
        """Find or create the user behind a platform login and store the grant."""

        email = platform_identity_email(profile)
        now = self._clock()
        with self._uow_factory() as uow:
            repos = uow.repositories
            user = _resolve_identity(repos, email)
            if user is None:
                user = User(
                    email=email,
                    display_name=profile.display_name or email.split("@", 1)[0],
                    created_at=now,
                )
                repos.users.add(user)
                uow.flush()
                log.info("Created user %s from %s login", user.id, profile.platform)
            _upsert_account(repos, user_id=user.id, platform=profile.platform, grant=grant, now=now)
            uow.commit()
        return user

    def link_music_account(
        self,
        user_id: UUID,
        profile: PlatformProfile,
        grant: TokenGrant,
    ) -> UserMusicAccount:
        """Attach a platform account to an existing user.

        Raises ``MergeRequiredError`` when the profile's identity already belongs
        to a different user.
        """

        email = platform_identity_email(profile)
        now = self._clock()
        with self._uow_factory() as uow:
            repos = uow.repositories
            current = repos.users.get(user_id)
            if current is None:
                raise UserNotFoundError(user_id)

            owner = _resolve_identity(repos, email)
            if owner is not None and owner.id != current.id:
                raise MergeRequiredError(
                    current_user=current,
                    existing_user=owner,
                    platform=profile.platform,
                    grant=grant,
                )

            if owner is None and email != current.email:
                # later logins through this platform resolve to the same user
                repos.email_aliases.add(
                    UserEmailAlias(
                        alias_email=email,
                        user_id=current.id,
                        platform=profile.platform,
                        created_at=now,
                    )
                )

            account = _upsert_account(
                repos, user_id=current.id, platform=profile.platform, grant=grant, now=now
            )
            uow.commit()
        return account

    def perform_chosen_merge(
        self,
        primary_id: UUID,
        secondary_id: UUID,
        platform: Platform,
        grant: TokenGrant,
    ) -> User:
        """Fold ``secondary`` into ``primary`` in a single transaction.

        Where both users hold the same thing (a platform account, a membership,
        a submission in one round, preferences) the primary's copy wins and the
        secondary's is deleted. The secondary's email becomes an alias of the
        primary and the secondary user is removed. Any failure rolls back every
        step.
        """

        if primary_id == secondary_id:
            raise InvalidMergeTargetError("Cannot merge a user into itself")

        now = self._clock()
        with self._uow_factory() as uow:
            repos = uow.repositories
            primary = repos.users.get(primary_id)
            secondary = repos.users.get(secondary_id)
            if primary is None or secondary is None:
                missing = primary_id if primary is None else secondary_id
                raise InvalidMergeTargetError(f"User {missing} does not exist")

            held_platforms = {
                account.platform for account in repos.music_accounts.list_for_user(primary.id)
            }
            for account in list(repos.music_accounts.list_for_user(secondary.id)):
                if account.platform in held_platforms:
                    repos.music_accounts.delete(account)
                else:
                    account.user_id = primary.id
            uow.flush()

            _upsert_account(repos, user_id=primary.id, platform=platform, grant=grant, now=now)

            joined_groups = {
                member.group_id for member in repos.memberships.list_for_user(primary.id)
            }
            for membership in list(repos.memberships.list_for_user(secondary.id)):
                if membership.group_id in joined_groups:
                    repos.memberships.delete(membership)
                else:
                    membership.user_id = primary.id

            for group in repos.groups.list_administered_by(secondary.id):
                group.admin_user_id = primary.id

            for playlist in repos.playlists.list_owned_by(secondary.id):
                playlist.owner_user_id = primary.id

            submitted_rounds = {
                submission.round_id for submission in repos.submissions.list_for_user(primary.id)
            }
            for submission in list(repos.submissions.list_for_user(secondary.id)):
                if submission.round_id in submitted_rounds:
                    repos.submissions.delete(submission)
                else:
                    submission.user_id = primary.id

            secondary_preferences = repos.preferences.get_for_user(secondary.id)
            if secondary_preferences is not None:
                if repos.preferences.get_for_user(primary.id) is None:
                    secondary_preferences.user_id = primary.id
                else:
                    repos.preferences.delete(secondary_preferences)

            for alias in list(repos.email_aliases.list_for_user(secondary.id)):
                alias.user_id = primary.id
            if (
                secondary.email != primary.email
                and repos.email_aliases.get_by_email(secondary.email) is None
            ):
                repos.email_aliases.add(
                    UserEmailAlias(
                        alias_email=secondary.email,
                        user_id=primary.id,
                        platform=platform,
                        created_at=now,
                    )
                )
            uow.flush()

            repos.users.delete(secondary)
            uow.commit()

        log.info("Merged user %s into %s after %s link", secondary_id, primary_id, platform)
        return primary
