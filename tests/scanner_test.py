# --- tests/scanner_test.py ---

import os
import sys
import threading
import unittest
from unittest import mock

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

import scanner
from models import FileTypeCategory
from scanner import (
    Scanner,
    StoreNotFoundError,
    StructuralScanError,
    read_unit,
    scan_store,
)
from store_helpers import TempStoreTestCase, make_unit, write_file


class TestScanStore(TempStoreTestCase):

    def by_path(self, units):
        return {unit.path: unit for unit in units}

    def test_one_unit_per_non_empty_folder(self):
        a = make_unit(self.root, "00", "00", "AAAA", {"a.jpg": (100, None), "b.jpg": (250, None)})
        b = make_unit(self.root, "00", "01", "BBBB", {"clip.mov": (4000, None)})
        c = make_unit(self.root, "1f", "07", "CCCC", {"doc.pdf": (10, None)})

        units = self.by_path(scan_store(self.root))

        self.assertEqual(set(units), {a, b, c})
        self.assertEqual(units[a].total_size, 350)
        self.assertEqual(units[b].total_size, 4000)
        self.assertEqual(units[c].total_size, 10)

    def test_hidden_only_and_empty_folders_yield_nothing(self):
        make_unit(self.root, "00", "00", "HIDDEN", {".DS_Store": (6148, None)})
        make_unit(self.root, "00", "00", "EMPTY", {})
        subdir_only = make_unit(self.root, "00", "00", "NESTED", {})
        os.makedirs(os.path.join(subdir_only, "inner"))

        self.assertEqual(scan_store(self.root), [])

    def test_hidden_files_do_not_count_towards_size(self):
        path = make_unit(self.root, "00", "00", "AAAA",
                         {"photo.png": (100, None), ".thumb": (9999, None)})
        units = scan_store(self.root)
        self.assertEqual(len(units), 1)
        self.assertEqual(units[0].path, path)
        self.assertEqual(units[0].total_size, 100)

    def test_subdirectories_inside_a_unit_are_ignored(self):
        path = make_unit(self.root, "00", "00", "AAAA", {"photo.png": (100, None)})
        write_file(os.path.join(path, "Resources", "big.bin"), 50_000, None)

        units = scan_store(self.root)
        self.assertEqual(units[0].total_size, 100)
        self.assertEqual(units[0].display_name, "photo.png")

    def test_newest_file_is_primary(self):
        make_unit(self.root, "00", "00", "AAAA", {
            "old.txt": (10, self.days_ago(30)),
            "IMG_4821.HEIC": (2_000_000, self.days_ago(2)),
            "older.pdf": (10, self.days_ago(90)),
        })
        unit = scan_store(self.root)[0]

        self.assertEqual(unit.display_name, "IMG_4821.HEIC")
        self.assertEqual(unit.extension, "heic")
        self.assertIs(unit.category, FileTypeCategory.IMAGE)
        self.assertAlmostEqual(unit.last_modified, self.days_ago(2), places=3)
        self.assertEqual(unit.total_size, 2_000_020)

    def test_stray_files_at_every_level_are_skipped(self):
        write_file(os.path.join(self.root, "stray-root.txt"), 5)
        write_file(os.path.join(self.root, "00", "stray-hex.txt"), 5)
        write_file(os.path.join(self.root, "00", "00", "stray-sub.txt"), 5)
        path = make_unit(self.root, "00", "00", "AAAA", {"a.jpg": (1, None)})

        units = scan_store(self.root)
        self.assertEqual([unit.path for unit in units], [path])

    def test_unreadable_file_metadata_degrades_to_zero(self):
        path = make_unit(self.root, "00", "00", "AAAA", {"kept.jpg": (300, self.days_ago(5))})
        # Dangling symlink: listed, but its metadata cannot be read
        os.symlink(os.path.join(self.tmp, "missing-target"), os.path.join(path, "broken.mov"))

        units = scan_store(self.root)

        self.assertEqual(len(units), 1)
        self.assertEqual(units[0].total_size, 300)
        self.assertEqual(units[0].display_name, "kept.jpg")

    def test_unit_with_only_unreadable_files_is_skipped(self):
        path = make_unit(self.root, "00", "00", "AAAA", {})
        os.symlink(os.path.join(self.tmp, "missing-target"), os.path.join(path, "broken.mov"))
        self.assertEqual(scan_store(self.root), [])

    def test_missing_root_fails_fast(self):
        with self.assertRaises(StoreNotFoundError):
            scan_store(os.path.join(self.tmp, "does-not-exist"))

    def test_root_that_is_a_file_fails_fast(self):
        not_a_dir = os.path.join(self.tmp, "file")
        write_file(not_a_dir, 1)
        with self.assertRaises(StoreNotFoundError):
            scan_store(not_a_dir)

    def test_hex_folder_listing_failure_aborts_scan(self):
        make_unit(self.root, "00", "00", "AAAA", {"a.jpg": (1, None)})
        broken = os.path.join(self.root, "00")
        real_list_dir = scanner._list_dir

        def failing_list_dir(path):
            if path == broken:
                raise PermissionError(13, "Permission denied", path)
            return real_list_dir(path)

        with mock.patch("scanner._list_dir", side_effect=failing_list_dir):
            with self.assertRaises(StructuralScanError):
                scan_store(self.root)

    def test_subfolder_listing_failure_aborts_scan(self):
        make_unit(self.root, "00", "00", "AAAA", {"a.jpg": (1, None)})
        broken = os.path.join(self.root, "00", "00")
        real_list_dir = scanner._list_dir

        def failing_list_dir(path):
            if path == broken:
                raise OSError(5, "I/O error", path)
            return real_list_dir(path)

        with mock.patch("scanner._list_dir", side_effect=failing_list_dir):
            with self.assertRaises(StructuralScanError):
                scan_store(self.root)

    def test_unit_folder_listing_failure_skips_only_that_unit(self):
        # Stricter cleaners abort the whole scan here; this one skips the unit.
        # Only hex and subfolder listings are structural.
        bad = make_unit(self.root, "00", "00", "BAD", {"a.jpg": (1, None)})
        good = make_unit(self.root, "00", "00", "GOOD", {"b.jpg": (2, None)})
        real_list_dir = scanner._list_dir

        def failing_list_dir(path):
            if path == bad:
                raise PermissionError(13, "Permission denied", path)
            return real_list_dir(path)

        with mock.patch("scanner._list_dir", side_effect=failing_list_dir):
            units = scan_store(self.root)

        self.assertEqual([unit.path for unit in units], [good])

    def test_progress_is_monotonic_and_reaches_one(self):
        for hex_name in ("00", "01", "02", "03"):
            make_unit(self.root, hex_name, "00", "U" + hex_name, {"a.jpg": (1, None)})
        seen = []

        scan_store(self.root, on_progress=lambda fraction, status: seen.append(fraction))

        self.assertEqual(seen[0], 0.0)
        self.assertEqual(seen[-1], 1.0)
        self.assertEqual(seen, sorted(seen))
        # start, one per hex folder, finish
        self.assertEqual(len(seen), 6)

    def test_empty_store_is_an_empty_success(self):
        seen = []
        self.assertEqual(scan_store(self.root, on_progress=lambda f, s: seen.append(f)), [])
        self.assertEqual(seen, [0.0, 1.0])

    def test_custom_hidden_prefix(self):
        make_unit(self.root, "00", "00", "AAAA", {"~lock": (10, None), ".visible": (5, None)})
        units = scan_store(self.root, hidden_prefix="~")
        self.assertEqual(units[0].display_name, ".visible")
        self.assertEqual(units[0].total_size, 5)


class TestReadUnit(TempStoreTestCase):

    def test_missing_folder_returns_none(self):
        self.assertIsNone(read_unit(os.path.join(self.root, "gone")))


class TestScannerThread(TempStoreTestCase):

    def run_scanner(self, root):
        done = threading.Event()
        outcome = {}

        def on_complete(units):
            outcome["units"] = units
            done.set()

        def on_error(error):
            outcome["error"] = error
            done.set()

        thread = Scanner(root, on_progress=None, on_complete=on_complete, on_error=on_error)
        thread.start()
        self.assertTrue(done.wait(10))
        thread.join(10)
        return outcome

    def test_completes_with_units(self):
        make_unit(self.root, "00", "00", "AAAA", {"a.jpg": (1, None)})
        outcome = self.run_scanner(self.root)
        self.assertEqual(len(outcome["units"]), 1)
        self.assertNotIn("error", outcome)

    def test_reports_structural_errors(self):
        outcome = self.run_scanner(os.path.join(self.tmp, "missing"))
        self.assertIsInstance(outcome["error"], StoreNotFoundError)
        self.assertNotIn("units", outcome)


if __name__ == "__main__":
    unittest.main()
