"""
Unit tests for artifact cleanup and the output root sweep.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from live_ladder.core.modules.processing.artifact_cleanup import (
    ARTIFACT_SUFFIXES, cleanup_artifacts, discover_stream_directories, is_artifact,
    sweep_output_root,
)


class CleanupTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def touch(self, *names, directory=None):
        directory = directory or self.temp_dir
        directory.mkdir(parents=True, exist_ok=True)
        for name in names:
            (directory / name).write_bytes(b"x")


class TestIsArtifact(unittest.TestCase):

    def test_suffixes(self):
        for name in ("0-12.ts", "master.m3u8", "out.mpd", "chunk.m4s", "seg.tmp"):
            with self.subTest(name=name):
                self.assertTrue(is_artifact(name))

    def test_non_artifacts(self):
        for name in ("notes.txt", "ts", "master.m3u8.bak", "readme", "clip.mp4"):
            with self.subTest(name=name):
                self.assertFalse(is_artifact(name))

    def test_suffix_set(self):
        self.assertEqual(set(ARTIFACT_SUFFIXES), {".ts", ".m3u8", ".mpd", ".m4s", ".tmp"})


class TestCleanupArtifacts(CleanupTestCase):

    def test_removes_only_artifacts(self):
        self.touch("a.ts", "b.m3u8", "c.mpd", "d.m4s", "e.tmp", "notes.txt")

        report = cleanup_artifacts(self.temp_dir)

        self.assertTrue(report.ok)
        self.assertEqual(sorted(p.name for p in report.removed),
                         ["a.ts", "b.m3u8", "c.mpd", "d.m4s", "e.tmp"])
        self.assertEqual([p.name for p in self.temp_dir.iterdir()], ["notes.txt"])
        self.assertEqual([p.name for p in report.skipped], ["notes.txt"])

    def test_subdirectories_untouched(self):
        self.touch("0.ts")
        nested = self.temp_dir / "archive.ts"
        self.touch("inner.ts", directory=nested)

        report = cleanup_artifacts(self.temp_dir)

        self.assertEqual([p.name for p in report.removed], ["0.ts"])
        self.assertTrue((nested / "inner.ts").exists())
        self.assertIn(nested, report.skipped)

    def test_empty_directory(self):
        report = cleanup_artifacts(self.temp_dir)
        self.assertTrue(report.ok)
        self.assertEqual(report.removed, [])

    def test_missing_directory_reported(self):
        report = cleanup_artifacts(self.temp_dir / "gone")
        self.assertFalse(report.ok)
        self.assertIsNotNone(report.listing_error)
        self.assertEqual(report.removed, [])

    def test_listing_failure_does_not_raise(self):
        with patch.object(Path, "iterdir", side_effect=PermissionError("denied")):
            report = cleanup_artifacts(self.temp_dir)
        self.assertIn("denied", report.listing_error)

    def test_partial_failure_keeps_going(self):
        self.touch("a.ts", "b.ts", "c.ts")
        real_unlink = Path.unlink

        def flaky_unlink(path, *args, **kwargs):
            if path.name == "b.ts":
                raise PermissionError("busy")
            return real_unlink(path, *args, **kwargs)

        with patch.object(Path, "unlink", flaky_unlink):
            report = cleanup_artifacts(self.temp_dir, max_workers=2)

        self.assertFalse(report.ok)
        self.assertEqual([p.name for p in report.removed], ["a.ts", "c.ts"])
        self.assertEqual(len(report.failed), 1)
        failed_path, message = report.failed[0]
        self.assertEqual(failed_path.name, "b.ts")
        self.assertIn("busy", message)
        self.assertTrue((self.temp_dir / "b.ts").exists())

    def test_many_files(self):
        names = [f"{v}-{n}.ts" for v in range(3) for n in range(40)]
        self.touch(*names, "0.m3u8", "1.m3u8", "2.m3u8", "master.m3u8")

        report = cleanup_artifacts(self.temp_dir, max_workers=8)

        self.assertEqual(len(report.removed), len(names) + 4)
        self.assertEqual(list(self.temp_dir.iterdir()), [])

    @unittest.skipIf(os.name == "nt", "symlinks need privileges on Windows")
    def test_symlink_removed_not_target(self):
        target_dir = self.temp_dir / "elsewhere"
        self.touch("keep.ts", directory=target_dir)
        stream_dir = self.temp_dir / "stream"
        stream_dir.mkdir()
        (stream_dir / "link.ts").symlink_to(target_dir / "keep.ts")

        report = cleanup_artifacts(stream_dir)

        self.assertEqual([p.name for p in report.removed], ["link.ts"])
        self.assertTrue((target_dir / "keep.ts").exists())


class TestSweepOutputRoot(CleanupTestCase):

    def test_discovers_application_stream_directories(self):
        self.touch("0.ts", directory=self.temp_dir / "live" / "cam1")
        self.touch("0.ts", directory=self.temp_dir / "live" / "cam2")
        self.touch("0.ts", directory=self.temp_dir / "event" / "main")
        self.touch("stray.ts")

        found = discover_stream_directories(self.temp_dir)

        self.assertEqual(found, [
            self.temp_dir / "event" / "main",
            self.temp_dir / "live" / "cam1",
            self.temp_dir / "live" / "cam2",
        ])

    def test_missing_root(self):
        self.assertEqual(discover_stream_directories(self.temp_dir / "nope"), [])
        self.assertEqual(sweep_output_root(self.temp_dir / "nope"), [])

    def test_sweep_cleans_and_respects_exclude(self):
        cam1 = self.temp_dir / "live" / "cam1"
        cam2 = self.temp_dir / "live" / "cam2"
        self.touch("0-1.ts", "0.m3u8", "master.m3u8", "keep.txt", directory=cam1)
        self.touch("0-1.ts", "master.m3u8", directory=cam2)

        reports = sweep_output_root(self.temp_dir, exclude=(cam2,))

        self.assertEqual([r.directory for r in reports], [cam1])
        self.assertTrue(all(r.ok for r in reports))
        self.assertEqual([p.name for p in cam1.iterdir()], ["keep.txt"])
        self.assertTrue((cam2 / "master.m3u8").exists())


if __name__ == '__main__':
    unittest.main()
