"""
Tests for the public-inbox payload source against a throwaway git repository.
"""

import os
import shutil
import sys
import tempfile
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from git import Actor, Repo
from git.exc import NoSuchPathError

from sources.public_inbox import PayloadUnavailable, PublicInboxSource

AUTHOR = Actor("bench", "bench@example.org")


@unittest.skipUnless(shutil.which("git"), "git executable not available")
class TestPublicInboxSource(unittest.TestCase):
    """History iteration and payload extraction."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        repo = Repo.init(self.tmpdir)
        message_path = os.path.join(self.tmpdir, "m")

        for i in range(3):
            with open(message_path, "w") as f:
                f.write(f"Subject: message {i}\n\nbody {i}\n")
            repo.index.add(["m"])
            repo.index.commit(f"message {i}", author=AUTHOR, committer=AUTHOR)

        # A deletion commit carries no message file
        repo.index.remove(["m"], working_tree=True)
        repo.index.commit("purge", author=AUTHOR, committer=AUTHOR)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_count_entries(self):
        source = PublicInboxSource(self.tmpdir)
        self.assertEqual(source.count_entries(), 4)
        self.assertEqual(source.count_entries(limit=2), 2)

    def test_entries_are_newest_first(self):
        source = PublicInboxSource(self.tmpdir)
        messages = [entry.message.strip() for entry in source.iter_entries()]
        self.assertEqual(messages, ["purge", "message 2", "message 1", "message 0"])

    def test_read_payload(self):
        source = PublicInboxSource(self.tmpdir)
        entries = list(source.iter_entries())

        with self.assertRaises(PayloadUnavailable):
            source.read_payload(entries[0])
        self.assertEqual(source.read_payload(entries[1]), b"Subject: message 2\n\nbody 2\n")

    def test_history_is_replayable(self):
        source = PublicInboxSource(self.tmpdir)
        first = [entry.hexsha for entry in source.iter_entries()]
        second = [entry.hexsha for entry in source.iter_entries()]
        self.assertEqual(first, second)


class TestMissingRepository(unittest.TestCase):
    """Opening a path that does not exist."""

    def test_open_failure(self):
        with self.assertRaises(NoSuchPathError):
            PublicInboxSource(os.path.join(tempfile.gettempdir(), "no-such-inbox-repo"))


if __name__ == '__main__':
    unittest.main()
