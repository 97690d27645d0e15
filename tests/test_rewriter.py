"""Tests for the content rewriter."""
import pytest

from asset_deployer.models import UploadFile
from asset_deployer.services.rewriter import ContentRewriter, TrackedFiles

CDN = "https://cdn.example/"


def _rewriter(*names):
    return ContentRewriter({"default_cdn_base": CDN}, TrackedFiles(names))


class TestRewriteText:
    def test_script_reference(self):
        html = '<script src="app.js"></script>'
        assert _rewriter("app.js").rewrite_text(html, "index.html") == (
            '<script src="https://cdn.example/app.js"></script>'
        )

    def test_rewrite_is_a_fixed_point(self):
        rewriter = _rewriter("app.js")
        once = rewriter.rewrite_text('<script src="./app.js"></script>', "index.html")
        assert rewriter.rewrite_text(once, "index.html") == once

    def test_partial_names_do_not_match(self):
        html = '<script src="myapp.js"></script>'
        assert _rewriter("app.js").rewrite_text(html, "index.html") == html

    def test_absolute_urls_untouched(self):
        html = '<a href="https://example.com/app.js">x</a><img src="data:image/png;base64,AA">'
        assert _rewriter("app.js").rewrite_text(html, "index.html") == html

    def test_css_url_resolved_relative_to_stylesheet(self):
        css = "body { background: url('logo.png') } .b { background: url(../icon.svg?v=2) }"
        rewritten = _rewriter("assets/logo.png", "icon.svg").rewrite_text(css, "assets/style.css")
        assert "url('https://cdn.example/assets/logo.png')" in rewritten
        assert "url(https://cdn.example/icon.svg?v=2)" in rewritten

    def test_root_relative_reference(self):
        html = '<link href="/assets/style.css">'
        assert _rewriter("assets/style.css").rewrite_text(html) == (
            '<link href="https://cdn.example/assets/style.css">'
        )

    def test_unknown_reference_untouched(self):
        html = '<img src="missing.png">'
        assert _rewriter("app.js").rewrite_text(html, "index.html") == html

    def test_unquoted_attribute(self):
        html = "<script src=app.js></script><link rel=stylesheet href=assets/style.css>"
        rewriter = _rewriter("app.js", "assets/style.css")
        rewritten = rewriter.rewrite_text(html, "index.html")
        assert rewritten == (
            "<script src=https://cdn.example/app.js></script>"
            "<link rel=stylesheet href=https://cdn.example/assets/style.css>"
        )
        assert rewriter.rewrite_text(rewritten, "index.html") == rewritten

    def test_srcset_candidates_keep_descriptors(self):
        html = '<img srcset="logo.png 1x, logo@2x.png 2x, https://other.example/x.png 3x">'
        rewritten = _rewriter("logo.png", "logo@2x.png").rewrite_text(html, "index.html")
        assert rewritten == (
            '<img srcset="https://cdn.example/logo.png 1x,'
            ' https://cdn.example/logo@2x.png 2x, https://other.example/x.png 3x">'
        )

    def test_srcset_does_not_trigger_src_pattern(self):
        html = "<img srcset='a.png' src='a.png'>"
        assert _rewriter("a.png").rewrite_text(html, "index.html") == (
            "<img srcset='https://cdn.example/a.png' src='https://cdn.example/a.png'>"
        )


class TestRewriteFiles:
    @pytest.mark.asyncio
    async def test_disabled_returns_input_unchanged(self, build_dir):
        files = [UploadFile(name="index.html", path=build_dir / "index.html")]
        rewriter = ContentRewriter({})
        assert rewriter.enabled is False
        assert await rewriter.rewrite_files(files) is files
        assert "https://cdn" not in (build_dir / "index.html").read_text()

    @pytest.mark.asyncio
    async def test_rewrites_html_and_css_on_disk(self, build_dir, make_files):
        files = make_files(build_dir, ["index.html", "assets/style.css", "assets/logo.png", "app.js"])
        rewriter = ContentRewriter({"default_cdn_base": "https://cdn.example"})

        result = await rewriter.rewrite_files(files)

        assert [f.name for f in result] == [f.name for f in files]
        html = (build_dir / "index.html").read_text()
        assert 'src="https://cdn.example/app.js"' in html
        assert 'href="https://cdn.example/assets/style.css"' in html
        assert 'href="https://example.com/app.js"' in html
        css = (build_dir / "assets" / "style.css").read_text()
        assert "url('https://cdn.example/assets/logo.png')" in css
        assert (build_dir / "app.js").read_text() == "console.log('hi')"

    @pytest.mark.asyncio
    async def test_duplicate_names_processed_once(self, build_dir, make_files, monkeypatch):
        files = make_files(build_dir, ["index.html", "app.js"])
        extra = make_files(build_dir, ["index.html"])
        rewriter = ContentRewriter({"default_cdn_base": CDN})

        calls = []
        original = rewriter.rewrite_file

        async def counting(file):
            calls.append(file.name)
            return await original(file)

        monkeypatch.setattr(rewriter, "rewrite_file", counting)
        result = await rewriter.rewrite_files(files, extra)

        assert calls == ["index.html"]
        assert [f.name for f in result] == ["index.html", "app.js"]
        assert rewriter.tracked.snapshot() == ("index.html", "app.js")

    @pytest.mark.asyncio
    async def test_read_failure_propagates(self, build_dir, make_files):
        files = make_files(build_dir, ["missing.html", "app.js"])
        rewriter = ContentRewriter({"default_cdn_base": CDN})
        with pytest.raises(FileNotFoundError):
            await rewriter.rewrite_files(files)


class TestTrackedFiles:
    @pytest.mark.asyncio
    async def test_add_and_reset(self):
        tracked = TrackedFiles(["a.js"])
        await tracked.add("b.js")
        await tracked.add("a.js")
        assert tracked.snapshot() == ("a.js", "b.js")
        assert "b.js" in tracked
        tracked.reset(["c.js"])
        assert len(tracked) == 1
