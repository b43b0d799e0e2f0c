"""
Tests for package versions and version constraints
"""

import unittest

from dubpkg import Dependency, InvalidFormatError, Version


class TestVersion(unittest.TestCase):
    """Test version parsing and ordering"""

    def test_numbered_ordering(self):
        self.assertLess(Version("1.0.0"), Version("1.2.0"))
        self.assertLess(Version("1.2.0"), Version("2.0.0"))
        self.assertLess(Version("1.0.0-beta.1"), Version("1.0.0"))
        self.assertEqual(Version("1.2.3"), Version("1.2.3"))

    def test_branch_ordering(self):
        """Numbered versions sort above branches, ~master above other branches"""
        self.assertLess(Version("~master"), Version("0.0.1"))
        self.assertLess(Version("~develop"), Version("~master"))
        self.assertLess(Version("~alpha"), Version("~beta"))
        self.assertTrue(Version("~master").is_master)
        self.assertTrue(Version("~feature").is_branch)

    def test_total_order_max(self):
        versions = [Version(v) for v in ["~develop", "1.0.0", "~master", "2.0.0", "1.2.0"]]
        self.assertEqual(str(max(versions)), "2.0.0")
        self.assertEqual(
            [str(v) for v in sorted(versions)],
            ["~develop", "~master", "1.0.0", "1.2.0", "2.0.0"]
        )

    def test_compare_with_string(self):
        self.assertEqual(Version("1.0.0"), "1.0.0")
        self.assertNotEqual(Version("1.0.0"), "not a version")

    def test_invalid_versions(self):
        for text in ["", "~", "abc", "1.0"]:
            with self.assertRaises(InvalidFormatError):
                Version(text)

    def test_hashable(self):
        self.assertEqual(len({Version("1.0.0"), Version("1.0.0"), Version("~master")}), 2)


class TestDependency(unittest.TestCase):
    """Test version constraint matching"""

    def test_less_than(self):
        dep = Dependency("<2.0.0")
        self.assertTrue(dep.matches("1.2.0"))
        self.assertFalse(dep.matches("2.0.0"))

    def test_range(self):
        dep = Dependency(">=1.0.0 <2.0.0")
        self.assertTrue(dep.matches("1.5.0"))
        self.assertFalse(dep.matches("0.9.0"))
        self.assertFalse(dep.matches("2.0.0"))

    def test_operator_with_space(self):
        self.assertTrue(Dependency(">= 1.0.0").matches("1.0.0"))

    def test_approximate(self):
        dep = Dependency("~>1.2.3")
        self.assertTrue(dep.matches("1.2.9"))
        self.assertFalse(dep.matches("1.3.0"))
        self.assertFalse(dep.matches("1.2.2"))

        dep = Dependency("~>1.2")
        self.assertTrue(dep.matches("1.9.0"))
        self.assertFalse(dep.matches("2.0.0"))

    def test_caret(self):
        dep = Dependency("^1.2.0")
        self.assertTrue(dep.matches("1.9.9"))
        self.assertFalse(dep.matches("1.1.0"))
        self.assertFalse(dep.matches("2.0.0"))

    def test_exact_and_not_equal(self):
        self.assertTrue(Dependency("1.0.0").matches("1.0.0"))
        self.assertFalse(Dependency("1.0.0").matches("1.0.1"))
        self.assertTrue(Dependency("==1.0.0").matches(Version("1.0.0")))
        self.assertFalse(Dependency("!=1.0.0").matches("1.0.0"))

    def test_any(self):
        dep = Dependency("*")
        self.assertTrue(dep.matches("3.0.0"))
        self.assertTrue(dep.matches("~master"))

    def test_branches(self):
        dep = Dependency("~master")
        self.assertTrue(dep.is_branch)
        self.assertTrue(dep.matches("~master"))
        self.assertFalse(dep.matches("~develop"))
        self.assertFalse(dep.matches("1.0.0"))
        self.assertFalse(Dependency(">=0.0.1").matches("~master"))

    def test_invalid_specs(self):
        for spec in [">=", "~", "abc", ">=1.0.0 !"]:
            with self.assertRaises(InvalidFormatError):
                Dependency(spec)


if __name__ == "__main__":
    unittest.main()
