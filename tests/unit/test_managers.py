# Copyright 2024 Canonical Ltd.
# See LICENSE file for licensing details.

import unittest
from unittest.mock import patch

from imagebuilder import managers
from imagebuilder.apt import AptManager
from imagebuilder.definition import (
    CustomCommand,
    CustomManagerDefinition,
    PackageSet,
    RepositoryDeclaration,
)
from imagebuilder.dnf import DnfManager, YumManager
from imagebuilder.errors import ManagerError, UnsupportedOperationError

custom_definition = CustomManagerDefinition(
    clean=CustomCommand("pkg", ("clean",)),
    install=CustomCommand("pkg", ("add",)),
    refresh=CustomCommand("pkg", ("sync",)),
    remove=CustomCommand("pkg", ("del",)),
    update=CustomCommand("pkg", ("upgrade",)),
    flags=("--yes",),
)


class TestCommandTable(unittest.TestCase):
    def test_argv_concatenates_flags_in_order(self):
        table = managers.CommandTable(
            clean=managers.Command("tool", ("clean",)),
            install=managers.Command("tool", ("install", "--quiet")),
            refresh=managers.Command("tool", ("refresh",)),
            remove=managers.Command("tool", ("remove",)),
            update=managers.Command("tool", ("update",)),
            global_flags=("-y",),
        )
        self.assertEqual(
            table.argv("install", "--extra", "pkg1", "pkg2"),
            ["tool", "-y", "install", "--quiet", "--extra", "pkg1", "pkg2"],
        )

    def test_apt_table(self):
        table = AptManager().commands
        self.assertEqual(table.install.executable, "apt-get")
        self.assertEqual(table.remove.flags, ("remove", "--auto-remove"))
        self.assertEqual(table.global_flags, ("-y",))


class TestLoad(unittest.TestCase):
    def test_known_managers(self):
        self.assertIsInstance(managers.load("apt"), AptManager)
        self.assertIsInstance(managers.load("dnf"), DnfManager)
        self.assertIsInstance(managers.load("yum"), YumManager)

    def test_rootfs_is_passed(self):
        self.assertEqual(managers.load("apt", rootfs="/build/rootfs").rootfs, "/build/rootfs")

    def test_unknown_manager(self):
        with self.assertRaises(ManagerError) as ctx:
            managers.load("portage")
        self.assertEqual(ctx.exception.message, "Unknown package manager 'portage'")

    def test_custom_manager(self):
        mgr = managers.load("custom", custom=custom_definition)
        self.assertIsInstance(mgr, managers.CustomManager)
        self.assertEqual(mgr.commands.argv("install", "vim"), ["pkg", "--yes", "add", "vim"])

    def test_custom_manager_requires_definition(self):
        with self.assertRaises(ManagerError):
            managers.load("custom")

    def test_custom_manager_missing_commands(self):
        definition = CustomManagerDefinition(install=CustomCommand("pkg", ("add",)))
        with self.assertRaises(ManagerError) as ctx:
            managers.load("custom", custom=definition)
        self.assertIn("clean, refresh, remove, update", ctx.exception.message)

    def test_custom_manager_does_not_manage_repositories(self):
        mgr = managers.load("custom", custom=custom_definition)
        with self.assertRaises(UnsupportedOperationError):
            mgr.manage_repository(RepositoryDeclaration(name="repo", url="x"))


class TestManagePackages(unittest.TestCase):
    @patch("imagebuilder.managers.run_command")
    def test_empty_package_list_runs_nothing(self, mock_run):
        mgr = AptManager()
        mgr.install_packages([])
        mgr.remove_packages([])
        mock_run.assert_not_called()

    @patch("imagebuilder.managers.run_command")
    def test_sets_applied_in_order(self, mock_run):
        mgr = managers.load("custom", custom=custom_definition)
        mgr.manage_packages(
            [
                PackageSet(packages=("vim", "htop")),
                PackageSet(packages=("nano",), action="remove"),
                PackageSet(packages=("curl",), flags=("--no-cache",)),
            ],
            update=True,
            cleanup=True,
        )
        self.assertEqual(
            [c.args[0] for c in mock_run.call_args_list],
            [
                ["pkg", "--yes", "sync"],
                ["pkg", "--yes", "upgrade"],
                ["pkg", "--yes", "add", "vim", "htop"],
                ["pkg", "--yes", "del", "nano"],
                ["pkg", "--yes", "add", "--no-cache", "curl"],
                ["pkg", "--yes", "clean"],
            ],
        )

    @patch("imagebuilder.managers.run_command")
    def test_no_update_or_cleanup_by_default(self, mock_run):
        AptManager().manage_packages([PackageSet(packages=("vim",))])
        mock_run.assert_called_once_with(
            ["apt-get", "-y", "install", "vim"], env={"DEBIAN_FRONTEND": "noninteractive"}
        )
