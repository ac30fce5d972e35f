"""Tests for installer packaging."""

import json
import zipfile

import pytest

from extforge.modules.packager import PACKAGE_FORMATS, Packager, archive_name
from extforge.utils.exceptions import PackagingError


@pytest.fixture
def built(tmp_path):
    dist = tmp_path / 'dist'
    (dist / 'js').mkdir(parents=True)
    (dist / 'manifest.json').write_text(json.dumps({"name": "ext", "version": "1.2.3"}))
    (dist / 'background.js').write_text('bg')
    (dist / 'js' / 'content.js').write_text('content')
    return dist


def test_archive_name():
    assert archive_name('ext', '1.2.3', '.zip') == 'ext_1.2.3.zip'
    assert archive_name('ext', '1.2.3', '.xpi') == 'ext_1.2.3.xpi'
    assert archive_name('a/b', '1.0', '.zip') == 'a_b_1.0.zip'


def test_formats():
    assert PACKAGE_FORMATS == {'zip': '.zip', 'xpi': '.xpi'}


def test_package_names_from_built_manifest(built, tmp_path):
    packager = Packager(built, tmp_path / 'package')

    archives = packager.package_all()

    assert [a.name for a in archives] == ['ext_1.2.3.zip', 'ext_1.2.3.xpi']
    assert all(a.parent == tmp_path / 'package' for a in archives)


def test_archive_contains_whole_tree(built, tmp_path):
    archive = Packager(built, tmp_path / 'package').package('zip')

    with zipfile.ZipFile(archive) as zf:
        assert zf.namelist() == ['background.js', 'js/content.js', 'manifest.json']
        assert zf.read('js/content.js') == b'content'


def test_formats_have_identical_content(built, tmp_path):
    packager = Packager(built, tmp_path / 'package')
    zip_path = packager.package('zip')
    xpi_path = packager.package('xpi')

    with zipfile.ZipFile(zip_path) as a, zipfile.ZipFile(xpi_path) as b:
        assert a.namelist() == b.namelist()
        for name in a.namelist():
            assert a.read(name) == b.read(name)


def test_missing_manifest_is_fatal_and_writes_nothing(tmp_path):
    dist = tmp_path / 'dist'
    dist.mkdir()
    (dist / 'background.js').write_text('bg')
    package_dir = tmp_path / 'package'

    with pytest.raises(PackagingError, match="manifest"):
        Packager(dist, package_dir).package_all()

    assert not package_dir.exists()


def test_missing_build_directory(tmp_path):
    with pytest.raises(PackagingError):
        Packager(tmp_path / 'dist', tmp_path / 'package').package('zip')


def test_manifest_without_name(built, tmp_path):
    (built / 'manifest.json').write_text(json.dumps({"version": "1.0"}))
    with pytest.raises(PackagingError):
        Packager(built, tmp_path / 'package').package('zip')


def test_unknown_format(built, tmp_path):
    with pytest.raises(PackagingError, match="Unknown package format"):
        Packager(built, tmp_path / 'package').package('crx')


def test_older_packages_accumulate(built, tmp_path):
    package_dir = tmp_path / 'package'
    packager = Packager(built, package_dir)
    packager.package('zip')

    (built / 'manifest.json').write_text(json.dumps({"name": "ext", "version": "1.2.4"}))
    packager.package('zip')

    assert sorted(p.name for p in package_dir.iterdir()) == ['ext_1.2.3.zip', 'ext_1.2.4.zip']


def test_same_version_is_overwritten(built, tmp_path):
    packager = Packager(built, tmp_path / 'package')
    packager.package('zip')
    (built / 'extra.txt').write_text('new')
    archive = packager.package('zip')

    with zipfile.ZipFile(archive) as zf:
        assert 'extra.txt' in zf.namelist()
    assert not list((tmp_path / 'package').glob('*.part'))


def test_packages_inside_build_are_not_archived(built):
    package_dir = built / 'package'
    packager = Packager(built, package_dir)
    packager.package('zip')

    xpi = packager.package('xpi')

    with zipfile.ZipFile(xpi) as zf:
        assert zf.namelist() == ['background.js', 'js/content.js', 'manifest.json']
