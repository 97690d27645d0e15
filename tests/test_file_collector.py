"""Tests for bundle flattening and directory collection."""
from asset_deployer.orchestrator.file_collector import Bundle, FileCollector, iter_bundle_files


class TestBundleWalk:
    def test_flattens_nested_bundles(self, build_dir):
        css = Bundle(build_dir / "assets" / "style.css", [Bundle(build_dir / "assets" / "logo.png")])
        root = Bundle(build_dir / "index.html", [css, Bundle(build_dir / "app.js")])

        names = [f.name for f in iter_bundle_files(root, build_dir)]

        assert names == ["index.html", "assets/style.css", "assets/logo.png", "app.js"]

    def test_unnamed_bundles_are_skipped(self, build_dir):
        root = Bundle(None, [Bundle(build_dir / "app.js")])
        assert [f.name for f in iter_bundle_files(root, build_dir)] == ["app.js"]

    def test_cycle_terminates(self, build_dir):
        parent = Bundle(build_dir / "index.html")
        child = Bundle(build_dir / "app.js", [parent])
        parent.child_bundles.append(child)

        names = [f.name for f in iter_bundle_files(parent, build_dir)]
        assert names == ["index.html", "app.js"]

    def test_walk_is_restartable(self, build_dir):
        root = Bundle(build_dir / "index.html", [Bundle(build_dir / "app.js")])
        assert list(iter_bundle_files(root, build_dir)) == list(iter_bundle_files(root, build_dir))


class TestFileCollector:
    def test_collect_files(self, build_dir):
        files = FileCollector.collect_files(build_dir)
        assert [f.name for f in files] == ["app.js", "assets/logo.png", "assets/style.css", "index.html"]
        assert all(f.path.is_absolute() for f in files)

    def test_from_names(self, build_dir):
        files = FileCollector.from_names(["/index.html"], build_dir)
        assert files[0].name == "index.html"
        assert files[0].path == (build_dir / "index.html").resolve()
