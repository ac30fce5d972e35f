"""Shared fixtures: a sample extension source tree and fake transformations."""

import json
import threading

import pytest
from PIL import Image

from extforge.config import BuildConfig, PackagingMode
from extforge.modules.assets import CopyTransformer, ImageOptimizer
from extforge.modules.base import Transformer
from extforge.modules.notifier import Notifier
from extforge.modules.svg import IconRasterizer
from extforge.pipeline import BuildPipeline, Toolchain
from extforge.utils.exceptions import TransformError


class EventLog:
    """Thread-safe record of ("start"|"end", step) events."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def add(self, kind, name):
        with self._lock:
            self.events.append((kind, name))

    def index(self, kind, name):
        return self.events.index((kind, name))


class FakeTransformer(Transformer):
    """Writes '<name>:<source content>' to dest; fails on sources containing 'broken'."""

    def __init__(self, name, events=None, with_map=False):
        self.name = name
        self.events = events
        self.with_map = with_map
        self.calls = []

    def transform(self, source, dest):
        if self.events:
            self.events.add("start", self.name)
        try:
            self.calls.append(source)
            if 'broken' in source.name:
                raise TransformError(f"{self.name} cannot process {source.name}", source=source)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(f"{self.name}:{source.read_text()}")
            outputs = [dest]
            if self.with_map:
                source_map = dest.with_name(dest.name + '.map')
                source_map.write_text('{"version": 3}')
                outputs.append(source_map)
            return outputs
        finally:
            if self.events:
                self.events.add("end", self.name)


class RecordingCopier(CopyTransformer):
    def __init__(self, events=None):
        self.events = events

    def transform(self, source, dest):
        if self.events:
            self.events.add("start", f"copy:{source.name}")
        outputs = super().transform(source, dest)
        if self.events:
            self.events.add("end", f"copy:{source.name}")
        return outputs


class FakeRasterizer(IconRasterizer):
    """Renders a solid square instead of calling rsvg-convert."""

    def __init__(self, events=None, fail_sizes=()):
        super().__init__()
        self.events = events
        self.fail_sizes = set(fail_sizes)

    def rasterize(self, source, dest_dir, size):
        if size in self.fail_sizes:
            raise TransformError(f"cannot render {size}px", source=source)
        output = self.icon_path(source, dest_dir, size)
        output.parent.mkdir(parents=True, exist_ok=True)
        Image.new('RGBA', (size, size), (26, 115, 232, 255)).save(output)
        return output


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def notify(self, title, message):
        self.messages.append((title, message))


class ExplodingNotifier(Notifier):
    def notify(self, title, message):
        raise RuntimeError("notification daemon is gone")


def write_manifest(path, **overrides):
    manifest = {
        "manifest_version": 3,
        "name": "ext",
        "version": "1.2.3",
        "background": {"service_worker": "background.js"},
    }
    manifest.update(overrides)
    path.write_text(json.dumps(manifest))
    return manifest


@pytest.fixture
def source_tree(tmp_path):
    """A small but complete extension source tree."""
    src = tmp_path / "src"
    (src / "_locales" / "en").mkdir(parents=True)
    (src / "_locales" / "de").mkdir(parents=True)
    (src / "img").mkdir()
    (src / "html").mkdir()
    (src / "scss" / "pages").mkdir(parents=True)
    (src / "js" / "sub").mkdir(parents=True)

    write_manifest(src / "manifest.json")
    (src / "_locales" / "en" / "messages.json").write_text('{"appName": {"message": "Ext"}}')
    (src / "_locales" / "de" / "messages.json").write_text('{"appName": {"message": "Erw"}}')

    Image.new('RGB', (8, 8), (255, 0, 0)).save(src / "img" / "logo.png")
    Image.new('RGB', (8, 8), (0, 255, 0)).save(src / "img" / "photo.jpg")
    (src / "img" / "cursor.svg").write_text('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10"/>')
    (src / "img" / "arrow.svg").write_text('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 5 5"/>')

    (src / "html" / "popup.html").write_text("<html> <body> popup </body> </html>")
    (src / "scss" / "popup.scss").write_text("body { color: red; }")
    (src / "scss" / "_vars.scss").write_text("$c: red;")
    (src / "scss" / "pages" / "options.scss").write_text("h1 { margin: 0; }")

    (src / "js" / "content.js").write_text("console.log('content');")
    (src / "js" / "content.test.js").write_text("test('x', () => {});")
    (src / "js" / "sub" / "util.js").write_text("export const x = 1;")
    (src / "background.js").write_text("chrome.runtime.onInstalled.addListener(() => {});")
    return src


@pytest.fixture
def build_config(tmp_path, source_tree):
    return BuildConfig(
        source_dir=source_tree,
        dist_dir=tmp_path / "dist",
        package_dir=tmp_path / "package",
        project_dir=tmp_path,
        packaging_mode=PackagingMode.NONE,
        max_workers=4,
        watch_debounce=0.05,
    )


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def fake_toolchain(events):
    return Toolchain(
        copier=RecordingCopier(events),
        images=ImageOptimizer(production=False),
        svg=FakeTransformer('svg', events),
        icons=FakeRasterizer(events),
        markup=FakeTransformer('html', events),
        styles=FakeTransformer('css', events, with_map=True),
        scripts=FakeTransformer('js', events, with_map=True),
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_pipeline(build_config, fake_toolchain, notifier):
    """Factory: pipeline over the sample tree with fake tools; config fields can be overridden."""
    def factory(toolchain=None, **overrides):
        config = build_config.model_copy(update=overrides) if overrides else build_config
        return BuildPipeline(config, toolchain=toolchain or fake_toolchain, notifier=notifier)
    return factory
