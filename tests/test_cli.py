"""
Tests for the command-line interface and configuration loading
"""

import io
import json
import os
import shutil
import tempfile
import unittest
import zipfile
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from dubpkg import InvalidFormatError, load_config
from dubpkg.cli import main


class TestConfig(unittest.TestCase):
    """Test configuration loading"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_defaults_without_settings_file(self):
        with mock.patch("dubpkg.config.default_config_files", return_value=[]), \
                mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("DUBPKG_USER_PATH", None)
            os.environ.pop("DUBPKG_SYSTEM_PATH", None)
            config = load_config()

        self.assertEqual(config.search_path, [])
        self.assertEqual(config.log_level, "info")

    def test_settings_file(self):
        settings = self.temp_dir / "settings.json"
        settings.write_text(json.dumps({
            "userPath": str(self.temp_dir / "user"),
            "systemPath": str(self.temp_dir / "system"),
            "searchPath": [str(self.temp_dir / "checkouts")],
            "logLevel": "diagnostic"
        }))

        with mock.patch.dict(os.environ, {"DUBPKG_USER_PATH": str(self.temp_dir / "override")}):
            config = load_config(settings)

        self.assertEqual(config.user_path, self.temp_dir / "override")
        self.assertEqual(config.system_path, self.temp_dir / "system")
        self.assertEqual(config.search_path, [self.temp_dir / "checkouts"])
        self.assertEqual(config.log_level, "diagnostic")

    def test_invalid_settings(self):
        settings = self.temp_dir / "settings.json"
        settings.write_text(json.dumps({"searchPath": "/not/a/list"}))
        with self.assertRaises(InvalidFormatError):
            load_config(settings)

        settings.write_text(json.dumps({"logLevel": "chatty"}))
        with self.assertRaises(InvalidFormatError):
            load_config(settings)


class TestCLI(unittest.TestCase):
    """Test the dubpkg command"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.settings = self.temp_dir / "settings.json"
        self.settings.write_text(json.dumps({
            "userPath": str(self.temp_dir / "user"),
            "systemPath": str(self.temp_dir / "system"),
            "logLevel": "warning"
        }))
        self.env = mock.patch.dict(os.environ, {
            "DUBPKG_USER_PATH": "",
            "DUBPKG_SYSTEM_PATH": ""
        })
        self.env.start()

    def tearDown(self):
        self.env.stop()
        shutil.rmtree(self.temp_dir)

    def run_cli(self, *args: str):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(["--config", str(self.settings), *args])
        return code, out.getvalue(), err.getvalue()

    def make_archive(self) -> Path:
        archive = self.temp_dir / "foo.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("package.json", json.dumps({"name": "foo"}))
            zf.writestr("source/foo.d", "module foo;")
        return archive

    def test_install_list_hash_uninstall(self):
        code, out, _ = self.run_cli("install", str(self.make_archive()), "--name", "foo", "--version", "1.0.0")
        self.assertEqual(code, 0)
        dest = self.temp_dir / "user" / "packages" / "foo-1.0.0"
        self.assertTrue((dest / "journal.json").is_file())

        code, out, _ = self.run_cli("list")
        self.assertEqual(code, 0)
        self.assertIn(f"foo 1.0.0: {dest}", out)

        code, out, _ = self.run_cli("hash", "foo", "1.0.0")
        self.assertEqual(code, 0)
        self.assertEqual(len(out.strip()), 64)

        code, out, _ = self.run_cli("best", "foo", ">=1.0.0")
        self.assertEqual(code, 0)
        self.assertIn("foo 1.0.0", out)

        code, _, _ = self.run_cli("uninstall", "foo", "1.0.0")
        self.assertEqual(code, 0)
        self.assertFalse(dest.exists())

    def test_local_package_commands(self):
        checkout = self.temp_dir / "checkout"
        checkout.mkdir()
        (checkout / "package.json").write_text(json.dumps({"name": "bar"}))

        code, out, _ = self.run_cli("add-local", str(checkout), "0.2.0")
        self.assertEqual(code, 0)
        self.assertIn("bar 0.2.0", out)

        code, out, _ = self.run_cli("list", "bar")
        self.assertIn("bar 0.2.0", out)

        code, _, _ = self.run_cli("remove-local", str(checkout))
        self.assertEqual(code, 0)

        code, _, err = self.run_cli("remove-local", str(checkout))
        self.assertEqual(code, 1)
        self.assertIn("Error", err)

    def test_search_path_commands(self):
        scan = self.temp_dir / "scan"
        code, _, _ = self.run_cli("add-path", "--system", str(scan))
        self.assertEqual(code, 0)

        data = json.loads((self.temp_dir / "system" / "packages" / "local-packages.json").read_text())
        self.assertEqual(data, [{"name": "*", "path": str(scan)}])

        code, _, _ = self.run_cli("remove-path", "--system", str(scan))
        self.assertEqual(code, 0)

    def test_errors(self):
        code, _, err = self.run_cli("uninstall", "missing", "1.0.0")
        self.assertEqual(code, 1)
        self.assertIn("not installed", err)

        code, _, err = self.run_cli("best", "missing", "*")
        self.assertEqual(code, 1)

        code, _, err = self.run_cli("install", str(self.temp_dir / "nope.zip"), "--name", "x", "--version", "1.0.0")
        self.assertEqual(code, 1)
        self.assertIn("Error", err)


if __name__ == "__main__":
    unittest.main()
