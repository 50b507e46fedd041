from __future__ import annotations

from pathlib import Path
from typing import List
from unittest.mock import patch
import io
import json
import tarfile
import tempfile
import unittest
import urllib.error

from material_tools.errors import VersionNotFoundError
from material_tools.package_resolver import PackageResolver, RegistryFetcher, find_local_install
from material_tools.versioning import Version

from tests.fixtures import write_package


class FakeFetcher:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: List[str] = []
        self.fail = fail

    def fetch(self, version: str, destination: Path) -> None:
        self.calls.append(version)
        if self.fail:
            (destination / "partial").mkdir(parents=True)
            raise VersionNotFoundError(version, "registry answered 404")
        write_package(destination, {"core": []}, version=version)


class PackageResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.cache = self.root / "cache"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_fetches_missing_version_into_cache(self) -> None:
        fetcher = FakeFetcher()
        resolver = PackageResolver(fetcher=fetcher, entry_filename="angular-material.js")

        package = resolver.resolve("1.1.0", self.cache)

        self.assertEqual(fetcher.calls, ["1.1.0"])
        self.assertEqual(package.version, Version(1, 1, 0))
        self.assertEqual(package.root, (self.cache / "1.1.0").resolve())
        self.assertTrue((package.root / "angular-material.js").is_file())
        # only the published version remains; staging directories are gone
        self.assertEqual([path.name for path in self.cache.iterdir()], ["1.1.0"])

    def test_cached_version_is_not_fetched_again(self) -> None:
        write_package(self.cache / "1.0.9", {"core": []}, version="1.0.9")
        fetcher = FakeFetcher()

        package = PackageResolver(fetcher=fetcher).resolve("v1.0.9", self.cache)

        self.assertEqual(fetcher.calls, [])
        self.assertEqual(package.version, Version(1, 0, 9))
        self.assertEqual(package.root, (self.cache / "1.0.9").resolve())

    def test_fetch_failure_leaves_no_partial_directory(self) -> None:
        resolver = PackageResolver(fetcher=FakeFetcher(fail=True))

        with self.assertRaises(VersionNotFoundError):
            resolver.resolve("1.1.0", self.cache)

        self.assertEqual(list(self.cache.iterdir()), [])

    def test_concurrently_published_version_is_kept(self) -> None:
        cache = self.cache

        class RacingFetcher:
            def fetch(self, version: str, destination: Path) -> None:
                write_package(cache / version / "winner", {"core": []}, version=version)
                write_package(destination, {"core": []}, version=version)

        package = PackageResolver(fetcher=RacingFetcher()).resolve("1.1.0", cache)

        self.assertTrue((package.root / "winner").is_dir())
        self.assertEqual([path.name for path in cache.iterdir()], ["1.1.0"])

    def test_invalid_version(self) -> None:
        fetcher = FakeFetcher()

        with self.assertRaises(VersionNotFoundError) as ctx:
            PackageResolver(fetcher=fetcher).resolve("latest", self.cache)

        self.assertEqual(ctx.exception.version, "latest")
        self.assertEqual(fetcher.calls, [])

    def test_missing_entry_file(self) -> None:
        (self.cache / "1.1.0").mkdir(parents=True)
        resolver = PackageResolver(fetcher=FakeFetcher(), entry_filename="angular-material.js")

        with self.assertRaises(VersionNotFoundError) as ctx:
            resolver.resolve("1.1.0", self.cache)

        self.assertIn("angular-material.js", str(ctx.exception))

    def test_local_install(self) -> None:
        project = self.root / "project"
        write_package(project / "node_modules" / "angular-material", {"core": []}, version="1.1.0-rc.5")
        nested = project / "src" / "app"
        nested.mkdir(parents=True)
        fetcher = FakeFetcher()

        for version in ("local", "node", None):
            with self.subTest(version=version):
                package = PackageResolver(fetcher=fetcher, search_root=nested).resolve(version, self.cache)
                self.assertEqual(package.version, Version(1, 1, 0, rc=5))
                self.assertEqual(package.root, (project / "node_modules" / "angular-material").resolve())
        self.assertEqual(fetcher.calls, [])

    def test_local_install_missing(self) -> None:
        with self.assertRaises(VersionNotFoundError):
            PackageResolver(fetcher=FakeFetcher(), search_root=self.root).resolve("local", self.cache)

    def test_find_local_install_requires_package_json(self) -> None:
        (self.root / "node_modules" / "angular-material").mkdir(parents=True)

        self.assertIsNone(find_local_install("angular-material", self.root))


def _tarball(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, text in files.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class RegistryFetcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.responses = {
            "https://registry.example.test/angular-material/1.1.0": json.dumps(
                {"dist": {"tarball": "https://registry.example.test/angular-material/-/angular-material-1.1.0.tgz"}}
            ).encode("utf-8"),
            "https://registry.example.test/angular-material/-/angular-material-1.1.0.tgz": _tarball(
                {
                    "package/package.json": '{"version": "1.1.0"}',
                    "package/angular-material.js": "angular.module('material.core', []);",
                }
            ),
        }
        self.urls: List[str] = []

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _urlopen(self, request, timeout=None):
        url = request.full_url
        self.urls.append(url)
        if url not in self.responses:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)
        return io.BytesIO(self.responses[url])

    def test_downloads_and_unwraps_tarball(self) -> None:
        fetcher = RegistryFetcher("angular-material", registry_url="https://registry.example.test/")
        destination = self.root / "package"

        with patch("urllib.request.urlopen", side_effect=self._urlopen):
            fetcher.fetch("1.1.0", destination)

        self.assertEqual((destination / "package.json").read_text(), '{"version": "1.1.0"}')
        self.assertTrue((destination / "angular-material.js").is_file())
        self.assertEqual(len(self.urls), 2)
        self.assertEqual([path.name for path in self.root.iterdir()], ["package"])

    def test_unknown_version(self) -> None:
        fetcher = RegistryFetcher("angular-material", registry_url="https://registry.example.test")

        with patch("urllib.request.urlopen", side_effect=self._urlopen):
            with self.assertRaises(VersionNotFoundError) as ctx:
                fetcher.fetch("9.9.9", self.root / "package")

        self.assertIn("404", str(ctx.exception))
        self.assertFalse((self.root / "package").exists())

    def test_metadata_without_tarball(self) -> None:
        self.responses["https://registry.example.test/angular-material/1.1.0"] = b'{"name": "angular-material"}'
        fetcher = RegistryFetcher("angular-material", registry_url="https://registry.example.test")

        with patch("urllib.request.urlopen", side_effect=self._urlopen):
            with self.assertRaises(VersionNotFoundError):
                fetcher.tarball_url("1.1.0")


if __name__ == "__main__":
    unittest.main()
