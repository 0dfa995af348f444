"""Services that derive hashtags and mentions from status text."""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from status_editor.db.models import Account, Mention, Status, Tag

HASHTAG_RE = re.compile(r"(?:^|[^\w/#])#(\w*[^\W\d_]\w*)", re.UNICODE)
MENTION_RE = re.compile(r"(?:^|[^\w/@])@(\w+)(?:@([\w.-]+\.\w+))?", re.UNICODE)


def extract_hashtags(text: str) -> List[str]:
    """Lower-cased, de-duplicated hashtag names in order of appearance."""
    names: List[str] = []
    for match in HASHTAG_RE.finditer(text or ""):
        name = match.group(1).lower()
        if name not in names:
            names.append(name)
    return names


def extract_mentions(text: str) -> List[Tuple[str, Optional[str]]]:
    """Lower-cased (username, domain) pairs; domain is None for local mentions."""
    mentions: List[Tuple[str, Optional[str]]] = []
    for match in MENTION_RE.finditer(text or ""):
        domain = match.group(2)
        mention = (match.group(1).lower(), domain.lower() if domain else None)
        if mention not in mentions:
            mentions.append(mention)
    return mentions


class ProcessHashtagsService:

    @staticmethod
    def call(session: Session, status: Status) -> List[Tag]:
        """Replace the status' tags with the hashtags in its text and spoiler."""
        names = extract_hashtags(f"{status.spoiler_text} {status.text}")

        existing = {}
        if names:
            existing = {
                tag.name: tag
                for tag in session.execute(select(Tag).where(Tag.name.in_(names))).scalars().all()
            }

        tags = []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(name=name)
                session.add(tag)
            tags.append(tag)

        status.tags = tags
        session.flush()
        logger.debug(f"[EDIT] Status {status.id} tags: {names}")
        return tags


class ProcessMentionsService:

    @staticmethod
    def call(session: Session, status: Status) -> List[Mention]:
        """Replace the status' mentions with the local accounts its text refers to."""
        mentions = extract_mentions(status.text)

        # Only local accounts exist here; user@domain never resolves to a local user
        remote = [f"{username}@{domain}" for username, domain in mentions if domain]
        if remote:
            logger.debug(f"[EDIT] Status {status.id} skipping remote mentions {remote}")
        usernames = [username for username, domain in mentions if domain is None]

        accounts = []
        if usernames:
            accounts = session.execute(
                select(Account).where(func.lower(Account.username).in_(usernames))
            ).scalars().all()

        found = {account.username.lower() for account in accounts}
        missing = [username for username in usernames if username not in found]
        if missing:
            logger.debug(f"[EDIT] Status {status.id} mentions unknown accounts {missing}")

        current = {mention.account_id: mention for mention in status.mentions}
        status.mentions = [
            current.get(account.id) or Mention(account_id=account.id)
            for account in accounts
        ]
        session.flush()
        return list(status.mentions)
