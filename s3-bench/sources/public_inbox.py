"""
Payload source reading mailing-list messages from a public-inbox git repository.
"""

import logging
from typing import Iterator

from git import Repo
from git.exc import GitError
from git.objects import Commit

from configuration import PAYLOAD_FILE_NAME, PAYLOAD_REVISION

logger = logging.getLogger(__name__)


class PayloadUnavailable(Exception):
    """The history entry carries no readable payload file."""


class PublicInboxSource:
    """Replayable, newest-first sequence of messages stored in a git history.

    public-inbox commits one message per commit, always under the same file
    name, so every commit of the history is one candidate payload. All
    methods block on disk I/O and are meant to run in a worker thread.
    """

    def __init__(
        self,
        repo_path: str,
        file_name: str = PAYLOAD_FILE_NAME,
        revision: str = PAYLOAD_REVISION,
    ):
        self.repo_path = repo_path
        self.file_name = file_name
        self.revision = revision
        logger.info(f"git: opening repository {repo_path}")
        # Raises NoSuchPathError / InvalidGitRepositoryError
        self.repo = Repo(repo_path)

    def iter_entries(self) -> Iterator[Commit]:
        """Yield commits from ``revision`` backwards, newest first."""
        return self.repo.iter_commits(self.revision)

    def count_entries(self, limit: int = 0) -> int:
        """Count history entries, stopping at ``limit`` (0 counts them all)."""
        logger.info("git: counting objects...")
        count = 0
        for _ in self.iter_entries():
            count += 1
            if limit and count >= limit:
                break
        logger.info(f"git: collected {count} messages")
        return count

    def read_payload(self, entry: Commit) -> bytes:
        """Return the message bytes stored in ``entry``.

        Raises:
            PayloadUnavailable: The commit has no such file or it cannot be read
        """
        try:
            blob = entry.tree / self.file_name
            return blob.data_stream.read()
        except (KeyError, GitError, ValueError) as e:
            raise PayloadUnavailable(
                f"{entry.hexsha[:12]} has no readable {self.file_name!r}: {e}"
            ) from e

    def __repr__(self) -> str:
        return f"PublicInboxSource(repo_path='{self.repo_path}', file_name='{self.file_name}')"
