"""Permission checks for review actions.

A user holds permission keys (e.g. "SaveText"). Each key unlocks one or more
UI actions and carries a rule listing, per state axis, the record states in
which it applies. An action is allowed on an axis when any held key that
unlocks it allows the current state on that axis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set

from models.translation import CommonDataMode
from models.user_context import PermissionRule, UserContext

LOGGER = logging.getLogger(__name__)

METADATA = "metadata"
LANGUAGE = "language"
CHECK_TYPES = (METADATA, LANGUAGE)

PERMISSION_TO_UI_ACTIONS: Dict[str, List[str]] = {
    "SaveText": ["saveToDatabase"],
    "ReleaseText": ["releaseToDatabase"],
    "VerifyText": ["verifyData"],
    "ApproveText": ["approveData"],
    "RejectText": ["rejectData"],
    "UploadPictures": ["uploadPicture", "identifyImage"],
    "ViewDatabase": ["showDatabase"],
    "SwitchToEditMode": ["switchToEditMode"],
    "EditReleased": ["switchToEditMode"],
    "ViewWorkList": ["viewWorkListWindow"],
    "SkipToNextContributor": ["skipData"],
    "SkipToNextReviewer": ["skipData"],
}


def _invert(mapping: Mapping[str, List[str]]) -> Dict[str, List[str]]:
    inverted: Dict[str, List[str]] = {}
    for permission, actions in mapping.items():
        for action in actions:
            inverted.setdefault(action, []).append(permission)
    return inverted


UI_ACTION_TO_PERMISSIONS: Dict[str, List[str]] = _invert(PERMISSION_TO_UI_ACTIONS)

# Later permissions overwrite earlier ones, so e.g. switchToEditMode -> EditReleased.
RETURN_PERMISSION_ACTION: Dict[str, str] = {
    action: permission
    for permission, actions in PERMISSION_TO_UI_ACTIONS.items()
    for action in actions
}

UI_ACTIONS: List[str] = list(UI_ACTION_TO_PERMISSIONS)


def normalize_state(state: Optional[str]) -> Optional[str]:
    """Treat an empty state the same as no state."""
    return None if state == "" or state is None else state


@dataclass(frozen=True)
class PermissionCheck:
    """Outcome of checking one action on both state axes."""

    metadata: bool
    language: bool

    @property
    def allowed(self) -> bool:
        return self.metadata and self.language

    @property
    def any(self) -> bool:
        return self.metadata or self.language


def allowed_ui_actions(user: Optional[UserContext]) -> Set[str]:
    """Return every UI action reachable from the user's permission keys."""
    if user is None:
        return set()
    actions: Set[str] = set()
    for permission in user.permissions:
        actions.update(PERMISSION_TO_UI_ACTIONS.get(permission, []))
    return actions


def can_perform_ui_action(
    ui_action: str,
    check_type: str,
    metadata_state: Optional[str],
    language_state: Optional[str],
    user: Optional[UserContext],
    permission_rules_override: Optional[Mapping[str, PermissionRule]] = None,
) -> bool:
    """Return True when `user` may perform `ui_action` on the `check_type` axis.

    Args:
        ui_action: UI action name, e.g. "saveToDatabase".
        check_type: "metadata" (image state) or "language" (translation state).
        metadata_state: Current image state; "" and None both mean no state.
        language_state: Current translation state of the active language.
        user: The signed-in user, or None.
        permission_rules_override: Rules to use instead of the user's own.

    Returns:
        Whether the current state on the requested axis is in the union of
        states allowed by every held permission that unlocks the action.
    """
    if check_type not in CHECK_TYPES:
        raise ValueError(f"Unknown check type '{check_type}'. Expected one of: {', '.join(CHECK_TYPES)}")
    if user is None:
        return False

    rules = permission_rules_override if permission_rules_override is not None else user.permission_rules
    if not rules:
        return False

    if ui_action not in allowed_ui_actions(user):
        LOGGER.debug("User %s has no permission unlocking %s", user.username, ui_action)
        return False

    allowed_states: Set[Optional[str]] = set()
    for permission in user.permissions:
        if ui_action not in PERMISSION_TO_UI_ACTIONS.get(permission, []):
            continue
        rule = rules.get(permission)
        if rule is None:
            continue
        states = rule.metadata if check_type == METADATA else rule.language
        allowed_states.update(normalize_state(s) for s in states)

    state = normalize_state(metadata_state if check_type == METADATA else language_state)
    allowed = state in allowed_states
    LOGGER.debug(
        "Permission %s/%s for %s: state=%r allowed_states=%r -> %s",
        ui_action, check_type, user.username, state, allowed_states, allowed,
    )
    return allowed


def make_action_checks(
    ui_action: str,
    metadata_state: Optional[str],
    language_state: Optional[str],
    user: Optional[UserContext],
) -> PermissionCheck:
    """Check one action on both axes."""
    return PermissionCheck(
        metadata=can_perform_ui_action(ui_action, METADATA, metadata_state, language_state, user),
        language=can_perform_ui_action(ui_action, LANGUAGE, metadata_state, language_state, user),
    )


def resolve_permission_action(ui_action: str, user: Optional[UserContext] = None) -> str:
    """Map a UI action to the permission-action name the backend expects.

    When a user is given, the first held permission that unlocks the action
    wins; otherwise the static reverse lookup is used.

    Raises:
        ValueError: If no permission unlocks the action.
    """
    if user is not None:
        for permission in user.permissions:
            if ui_action in PERMISSION_TO_UI_ACTIONS.get(permission, []):
                return permission
    try:
        return RETURN_PERMISSION_ACTION[ui_action]
    except KeyError:
        raise ValueError(f"Unknown UI action '{ui_action}'") from None


def determine_common_data_mode(
    metadata_state: Optional[str],
    language_state: Optional[str],
    user: Optional[UserContext],
) -> CommonDataMode:
    """Users who can both upload and identify images edit one shared record."""
    can_identify = make_action_checks("identifyImage", metadata_state, language_state, user).any
    can_upload = make_action_checks("uploadPicture", metadata_state, language_state, user).any
    return CommonDataMode.SHARED if can_identify and can_upload else CommonDataMode.PER_TAB
