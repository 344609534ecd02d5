"""Tests for extman.core.installer module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from extman.core.errors import BatchInstallError, ErrorKind, ExtensionError
from extman.core.installer import ExtensionInstaller
from extman.core.localization import LocalizationCache
from extman.core.models import InstallOptions


@pytest.fixture
def installer(store, gallery, localization) -> ExtensionInstaller:
    """Get an ExtensionInstaller over the in-memory collaborators."""
    return ExtensionInstaller(store, gallery, localization, max_workers=4)


class TestInstallScenarios:
    """End-to-end install scenarios over fakes."""

    def test_fresh_install_from_gallery(self, installer, store, gallery, output, make_manifest):
        """Nothing installed, gallery has 2.0.0: one install, no failures."""
        gallery.publish(make_manifest("pub.ext", "2.0.0"))

        outcome = installer.install(["pub.ext"], output)

        assert outcome.installed_identifiers == ["pub.ext"]
        assert outcome.failed == []
        assert store.gallery_installed_ids == ["pub.ext"]
        assert "Installing extension 'pub.ext' v2.0.0..." in output.lines
        assert "Extension 'pub.ext' v2.0.0 was successfully installed." in output.lines

    def test_installed_without_version_is_skipped(
        self, installer, store, gallery, output, make_manifest, make_installed
    ):
        """Already installed, no version, no force: nothing is attempted."""
        store.installed = [make_installed("pub.ext", "2.0.0")]
        gallery.publish(make_manifest("pub.ext", "3.0.0"))

        outcome = installer.install(["pub.ext"], output)

        assert store.gallery_installs == []
        assert gallery.get_extensions_calls == []
        assert outcome.installed_manifests == []
        assert outcome.failed == []
        assert any("is already installed. Use '--force'" in line for line in output.lines)

    def test_pinned_gallery_downgrade_is_blocked(
        self, installer, store, gallery, output, make_manifest, make_installed
    ):
        """A pinned older version passes the planner but is not installed without force."""
        store.installed = [make_installed("pub.ext", "2.0.0")]
        gallery.publish(make_manifest("pub.ext", "1.0.0"))
        gallery.publish(make_manifest("pub.ext", "2.0.0"))

        outcome = installer.install(["pub.ext@1.0.0"], output)

        assert gallery.compatible_calls == [("pub.ext", "1.0.0")]
        assert store.gallery_installs == []
        assert outcome.installed_manifests == []
        assert outcome.failed == []
        assert any("Use '--force' option to downgrade" in line for line in output.lines)

    def test_pinned_gallery_downgrade_with_force(
        self, installer, store, gallery, output, make_manifest, make_installed
    ):
        store.installed = [make_installed("pub.ext", "2.0.0")]
        gallery.publish(make_manifest("pub.ext", "1.0.0"))

        outcome = installer.install(["pub.ext@1.0.0"], output, force=True)

        assert [e.version for e, _ in store.gallery_installs] == ["1.0.0"]
        assert outcome.installed_identifiers == ["pub.ext"]
        assert "Updating the extension 'pub.ext' to the version 1.0.0" in output.lines

    def test_pinned_upgrade_proceeds_without_force(
        self, installer, store, gallery, output, make_manifest, make_installed
    ):
        store.installed = [make_installed("pub.ext", "1.0.0")]
        gallery.publish(make_manifest("pub.ext", "2.0.0"))

        outcome = installer.install(["pub.ext@2.0.0"], output)

        assert outcome.installed_identifiers == ["pub.ext"]
        assert "Updating the extension 'pub.ext' to the version 2.0.0" in output.lines


class TestInstallFromGallery:
    """Tests for gallery-resolved installs."""

    def test_same_gallery_version_is_neither_success_nor_failure(
        self, installer, store, gallery, output, make_manifest, make_installed
    ):
        """With --force and nothing newer in the gallery the install is a no-op."""
        store.installed = [make_installed("pub.ext", "2.0.0")]
        gallery.publish(make_manifest("pub.ext", "2.0.0"))

        outcome = installer.install(["pub.ext"], output, force=True)

        assert store.gallery_installs == []
        assert outcome.installed_manifests == []
        assert outcome.failed == []
        assert "Extension 'pub.ext' is already installed." in output.lines

    def test_not_found_is_a_failure(self, installer, gallery, output, make_manifest):
        gallery.publish(make_manifest("pub.ok", "1.0.0"))

        with pytest.raises(BatchInstallError) as exc_info:
            installer.install(["pub.missing", "pub.ok"], output)

        error = exc_info.value
        assert error.failed == ["pub.missing"]
        assert str(error) == "Failed Installing Extensions: pub.missing"
        assert error.outcome.installed_identifiers == ["pub.ok"]
        assert any("Extension 'pub.missing' not found." in e for e in output.errors)
        assert any("full extension ID" in e for e in output.errors)

    def test_not_found_message_includes_version(self, installer, output):
        with pytest.raises(BatchInstallError):
            installer.install(["pub.missing@1.0.0"], output)

        assert output.errors[0].startswith("Extension 'pub.missing@1.0.0' not found.")

    def test_failures_are_isolated(self, installer, store, gallery, output, make_manifest):
        """Every succeeding item is still recorded when others fail."""
        for identifier in ("pub.a", "pub.b", "pub.c", "pub.d"):
            gallery.publish(make_manifest(identifier, "1.0.0"))
        store.failures["pub.b"] = RuntimeError("disk full")
        store.failures["pub.d"] = ExtensionError(ErrorKind.INSTALL_FAILED, "corrupt package")

        with pytest.raises(BatchInstallError) as exc_info:
            installer.install(["pub.a", "pub.b", "pub.c", "pub.d"], output)

        assert set(exc_info.value.failed) == {"pub.b", "pub.d"}
        assert set(exc_info.value.outcome.installed_identifiers) == {"pub.a", "pub.c"}
        assert len(store.gallery_installs) == 4
        assert set(output.errors) == {"disk full", "corrupt package"}

    def test_cancelled_install_is_soft(self, installer, store, gallery, output, make_manifest):
        gallery.publish(make_manifest("pub.ext", "1.0.0"))
        store.failures["pub.ext"] = ExtensionError.cancelled("pub.ext")

        outcome = installer.install(["pub.ext"], output)

        assert outcome.installed_manifests == []
        assert outcome.failed == []
        assert "Cancelled installing extension 'pub.ext'." in output.lines

    def test_builtin_options_are_passed_through(
        self, installer, store, gallery, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.a", "1.0.0"))
        gallery.publish(make_manifest("pub.b", "1.0.0"))

        installer.install(["pub.a"], output, builtin_references=["pub.b"], is_machine_scoped=True)

        options = {e.identifier: o for e, o in store.gallery_installs}
        assert options["pub.a"] == InstallOptions(is_builtin=False, is_machine_scoped=True)
        assert options["pub.b"] == InstallOptions(is_builtin=True, is_machine_scoped=False)
        assert "Installing builtin extension 'pub.b' v1.0.0..." in output.lines

    def test_bare_and_builtin_duplicates_both_install(
        self, installer, store, gallery, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.a", "1.0.0"))

        installer.install(["pub.a"], output, builtin_references=["pub.a"])

        assert len(store.gallery_installs) == 2

    def test_snapshot_is_taken_once(self, installer, store, gallery, output, make_manifest):
        for identifier in ("pub.a", "pub.b", "pub.c"):
            gallery.publish(make_manifest(identifier, "1.0.0"))

        installer.install(["pub.a", "pub.b", "pub.c"], output)

        assert store.get_installed_calls == 1

    def test_no_gallery_configured(self, store, localization, output):
        installer = ExtensionInstaller(store, None, localization)

        with pytest.raises(ExtensionError) as exc_info:
            installer.install(["pub.ext"], output)

        assert "No gallery configured" in str(exc_info.value)


class TestInstallPackages:
    """Tests for local package installs."""

    def test_installs_package(self, installer, store, output, make_manifest):
        package = Path("/packages/pub.ext-1.0.0.tar.gz")
        store.manifests[package] = make_manifest("pub.ext", "1.0.0")

        outcome = installer.install([str(package)], output)

        assert store.installed_packages == [package]
        assert outcome.installed_identifiers == ["pub.ext"]
        assert "Extension 'pub.ext-1.0.0.tar.gz' was successfully installed." in output.lines

    def test_package_downgrade_is_blocked(
        self, installer, store, output, make_manifest, make_installed
    ):
        store.installed = [make_installed("pub.ext", "2.0.0")]
        package = Path("/packages/pub.ext-1.0.0.tar.gz")
        store.manifests[package] = make_manifest("pub.ext", "1.0.0")

        outcome = installer.install([str(package)], output)

        assert store.installed_packages == []
        assert outcome.installed_manifests == []
        assert outcome.failed == []

    def test_package_downgrade_with_force(
        self, installer, store, output, make_manifest, make_installed
    ):
        store.installed = [make_installed("pub.ext", "2.0.0")]
        package = Path("/packages/pub.ext-1.0.0.tar.gz")
        store.manifests[package] = make_manifest("pub.ext", "1.0.0")

        outcome = installer.install([str(package)], output, force=True)

        assert store.installed_packages == [package]
        assert outcome.installed_identifiers == ["pub.ext"]

    def test_invalid_package_fails_only_that_item(
        self, installer, store, gallery, output, make_manifest
    ):
        good = Path("/packages/pub.good-1.0.0.tar.gz")
        bad = Path("/packages/broken.tar.gz")
        store.manifests[good] = make_manifest("pub.good", "1.0.0")
        gallery.publish(make_manifest("pub.remote", "1.0.0"))

        with pytest.raises(BatchInstallError) as exc_info:
            installer.install([str(bad), str(good), "pub.remote"], output)

        assert exc_info.value.failed == [str(bad)]
        assert set(exc_info.value.outcome.installed_identifiers) == {"pub.good", "pub.remote"}
        assert "Invalid extension package" in output.errors

    def test_cancelled_package_install_is_soft(self, installer, store, output, make_manifest):
        package = Path("/packages/pub.ext-1.0.0.tar.gz")
        store.manifests[package] = make_manifest("pub.ext", "1.0.0")
        store.failures[str(package)] = ExtensionError.cancelled()

        outcome = installer.install([str(package)], output)

        assert outcome.failed == []
        assert "Cancelled installing extension 'pub.ext-1.0.0.tar.gz'." in output.lines

    def test_failed_package_is_reported_as_given(self, installer, store, output):
        """The failure names the package the way it was passed, not its resolved path."""
        with pytest.raises(BatchInstallError) as exc_info:
            installer.install(["./broken.tar.gz"], output)

        assert exc_info.value.failed == ["./broken.tar.gz"]
        assert "./broken.tar.gz" in str(exc_info.value)

    def test_gallery_error_stops_batch_before_any_install(
        self, installer, store, gallery, output, make_manifest
    ):
        package = Path("/packages/pub.lang-1.0.0.tar.gz")
        store.manifests[package] = make_manifest("pub.lang", "1.0.0", language_pack=True)

        with patch.object(gallery, "get_extensions", side_effect=RuntimeError("gallery down")):
            with pytest.raises(RuntimeError, match="gallery down"):
                installer.install([str(package), "pub.ext"], output)

        assert store.installed_packages == []


class TestLanguagePackRefresh:
    """Tests for the localization cache trigger."""

    def test_refreshes_after_language_pack(
        self, installer, gallery, localization, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.lang", "1.0.0", language_pack=True))

        installer.install(["pub.lang"], output)

        assert localization.refresh_count == 1

    def test_no_refresh_without_language_pack(
        self, installer, gallery, localization, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.ext", "1.0.0"))

        installer.install(["pub.ext"], output)

        assert localization.refresh_count == 0

    def test_refreshes_even_when_batch_fails(
        self, installer, gallery, localization, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.lang", "1.0.0", language_pack=True))

        with pytest.raises(BatchInstallError):
            installer.install(["pub.lang", "pub.missing"], output)

        assert localization.refresh_count == 1

    def test_refresh_called_once_per_batch(self, store, gallery, output, make_manifest):
        """Several language packs in one batch trigger a single refresh."""
        cache = MagicMock(spec=LocalizationCache)
        gallery.publish(make_manifest("pub.de", "1.0.0", language_pack=True))
        gallery.publish(make_manifest("pub.fr", "1.0.0", language_pack=True))

        ExtensionInstaller(store, gallery, cache).install(["pub.de", "pub.fr"], output)

        cache.refresh.assert_called_once_with()


class TestStoreCalls:
    """Tests for the calls made into the store."""

    def test_machine_scope_is_passed_to_store(
        self, installer, store, gallery, output, make_manifest
    ):
        gallery.publish(make_manifest("pub.ext", "1.0.0"))

        with patch.object(
            store, "install_from_gallery", wraps=store.install_from_gallery
        ) as install_from_gallery:
            installer.install(["pub.ext"], output, is_machine_scoped=True)

        extension, options = install_from_gallery.call_args.args
        assert extension.identifier == "pub.ext"
        assert options == InstallOptions(is_builtin=False, is_machine_scoped=True)
