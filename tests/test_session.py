#!/usr/bin/env python3
"""
Behavior tests for Session: path resolution and the filesystem operations.

These tests exercise the session the way the dispatcher does, through
paths, and check both the result values and the resulting tree.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from webterm.errors import BootstrapError, FsError
from webterm.filesystem import DynamicContent, FileSystem, StaticContent
from webterm.session import OpenBlob, OpenUrl, Session, download_name


@pytest.fixture
def session():
    """A session for 'guest' with a few files and directories."""
    fs = FileSystem.from_tree({
        'home': {
            'guest': {
                'motd.txt': b'hello\n',
                'docs': {'readme.md': b'# readme\n'},
            },
            'guest2': {},
        },
        'tmp': {},
    })
    return Session(fs, 'guest')


def error_kind(res):
    assert not res.ok, res
    return res.error.kind


class TestConstruction:

    def test_starts_in_home(self, session):
        assert session.pwd() == '/home/guest'
        assert session.formatted_cwd() == '~'

    def test_missing_home_is_fatal(self):
        fs = FileSystem.from_tree({'home': {}})
        with pytest.raises(BootstrapError):
            Session(fs, 'guest')

    def test_home_must_be_a_directory(self):
        fs = FileSystem.from_tree({'home': {'guest': b'not a dir'}})
        with pytest.raises(BootstrapError):
            Session(fs, 'guest')

    def test_initial_dir(self):
        fs = FileSystem.from_tree({'home': {'guest': {}}, 'tmp': {}})
        assert Session(fs, 'guest', initial_dir='/tmp').pwd() == '/tmp'

    def test_bad_initial_dir_is_fatal(self):
        fs = FileSystem.from_tree({'home': {'guest': {}}})
        with pytest.raises(BootstrapError):
            Session(fs, 'guest', initial_dir='/nowhere')


class TestCd:

    @pytest.mark.parametrize('path', ['/', '/home', '/home/guest', '/home/guest/docs', '/tmp'])
    def test_cd_then_pwd_round_trips(self, session, path):
        assert session.cd(path).ok
        assert session.pwd() == path

    def test_cd_without_argument_goes_home(self, session):
        session.cd('/tmp')
        assert session.cd().ok
        assert session.pwd() == '/home/guest'

    def test_relative_and_home_relative(self, session):
        assert session.cd('docs').ok
        assert session.pwd() == '/home/guest/docs'
        assert session.cd('..').ok
        assert session.pwd() == '/home/guest'
        session.cd('/tmp')
        assert session.cd('~/docs').ok
        assert session.pwd() == '/home/guest/docs'
        assert session.cd('~').ok
        assert session.pwd() == '/home/guest'

    def test_dot_dot_is_clamped_at_root(self, session):
        assert session.cd('/../../..').ok
        assert session.pwd() == '/'
        assert session.cd('../tmp').ok
        assert session.pwd() == '/tmp'

    def test_dot_dot_is_lexical(self, session):
        """'missing/..' normalizes away before the tree is walked."""
        assert session.cd('missing/../docs/./').ok
        assert session.pwd() == '/home/guest/docs'

    def test_missing_directory(self, session):
        res = session.cd('nope')
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert str(res.error) == 'nope: No such file or directory'
        assert session.pwd() == '/home/guest'

    def test_file_is_not_a_directory(self, session):
        res = session.cd('motd.txt')
        assert error_kind(res) == FsError.NOT_A_DIRECTORY
        assert str(res.error) == 'motd.txt: Not a directory'

    def test_file_in_the_middle(self, session):
        assert error_kind(session.cd('motd.txt/x')) == FsError.NOT_A_DIRECTORY

    def test_empty_path(self, session):
        assert error_kind(session.cd('')) == FsError.NO_SUCH_FILE_OR_DIRECTORY


class TestFormattedCwd:

    def test_home_subdirectory(self, session):
        session.cd('docs')
        assert session.formatted_cwd() == '~/docs'

    def test_outside_home(self, session):
        session.cd('/tmp')
        assert session.formatted_cwd() == '/tmp'
        session.cd('/')
        assert session.formatted_cwd() == '/'

    def test_similar_prefix_not_rewritten(self, session):
        session.cd('/home/guest2')
        assert session.formatted_cwd() == '/home/guest2'


class TestMkdir:

    def test_nested_with_parents(self, session):
        session.cd('/tmp')
        assert session.mkdir('a/b/c', True).ok
        assert session.is_directory('/tmp/a')
        assert session.is_directory('/tmp/a/b')
        assert session.is_directory('/tmp/a/b/c')

    def test_nested_without_parents_fails(self, session):
        session.cd('/tmp')
        res = session.mkdir('a/b/c', False)
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert not session.dir_or_file_exists('/tmp/a')

    def test_existing_target(self, session):
        res = session.mkdir('docs')
        assert error_kind(res) == FsError.FILE_EXISTS
        assert str(res.error) == "cannot create directory 'docs': File exists"
        assert error_kind(session.mkdir('motd.txt')) == FsError.FILE_EXISTS

    def test_parents_existing_directory_is_noop(self, session):
        assert session.mkdir('docs', True).ok
        assert session.list_files('docs').value == ['readme.md']

    def test_parents_existing_file_fails(self, session):
        assert error_kind(session.mkdir('motd.txt', True)) == FsError.FILE_EXISTS

    def test_parents_through_file_creates_nothing(self, session):
        res = session.mkdir('motd.txt/a/b', True)
        assert error_kind(res) == FsError.NOT_A_DIRECTORY
        assert session.list_files().value == ['docs/', 'motd.txt']

    def test_parent_is_file(self, session):
        assert error_kind(session.mkdir('motd.txt/a')) == FsError.NOT_A_DIRECTORY

    def test_root(self, session):
        assert error_kind(session.mkdir('/')) == FsError.FILE_EXISTS
        assert session.mkdir('/', True).ok


class TestTouchAndCat:

    def test_touch_then_cat_is_empty(self, session):
        assert session.touch('f').ok
        assert session.cat('f').value == ''

    def test_touch_existing_file_keeps_content(self, session):
        assert session.touch('motd.txt').ok
        assert session.cat('motd.txt').value == 'hello\n'

    def test_touch_existing_directory(self, session):
        assert session.touch('docs').ok
        assert session.is_directory('docs')

    def test_touch_missing_parent(self, session):
        res = session.touch('nope/f')
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert str(res.error) == "cannot touch 'nope/f': No such file or directory"

    def test_cat_directory(self, session):
        res = session.cat('docs')
        assert error_kind(res) == FsError.IS_A_DIRECTORY
        assert str(res.error) == 'docs: Is a directory'

    def test_cat_missing(self, session):
        assert error_kind(session.cat('nope')) == FsError.NO_SUCH_FILE_OR_DIRECTORY

    def test_cat_invalid_utf8(self, session):
        file = session.create_or_open_file('bin').value
        file.write(b'\xffok')
        assert session.cat('bin').value == '\ufffdok'


class TestCreateOrOpenFile:

    def test_creates_new_file(self, session):
        res = session.create_or_open_file('/tmp/new.txt')
        assert res.ok
        assert res.value.content == DynamicContent(b'')
        assert session.dir_or_file_exists('/tmp/new.txt')

    def test_seeds_new_file(self, session):
        res = session.create_or_open_file('seed', StaticContent(b'x', 'https://example.com/x'))
        assert res.value.content.url == 'https://example.com/x'

    def test_returns_existing_file(self, session):
        first = session.create_or_open_file('motd.txt').value
        first.append(b'more\n')
        assert session.cat('motd.txt').value == 'hello\nmore\n'

    def test_missing_parent_not_created(self, session):
        res = session.create_or_open_file('a/b/c.txt')
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert not session.dir_or_file_exists('a')

    def test_directory_target(self, session):
        assert error_kind(session.create_or_open_file('docs')) == FsError.IS_A_DIRECTORY
        assert error_kind(session.create_or_open_file('/')) == FsError.IS_A_DIRECTORY


class TestRm:

    def test_remove_file(self, session):
        assert session.rm('motd.txt').ok
        assert not session.dir_or_file_exists('motd.txt')

    def test_missing_target(self, session):
        res = session.rm('nope')
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert str(res.error) == "cannot remove 'nope': No such file or directory"

    def test_directory_needs_recursive(self, session):
        assert error_kind(session.rm('docs')) == FsError.IS_A_DIRECTORY
        assert session.rm('docs', True).ok
        assert not session.dir_or_file_exists('docs')

    def test_recursive_frees_arena_nodes(self, session):
        before = len(session.fs.nodes)
        session.rm('docs', True)
        assert len(session.fs.nodes) == before - 2

    @pytest.mark.parametrize('path', ['/', '/home', '/home/guest', '~', '~/..', '/home/guest/docs/../'])
    def test_protected_paths_refused(self, session, path):
        for recursive in (False, True):
            res = session.rm(path, recursive)
            assert error_kind(res) == FsError.OPERATION_REFUSED
        assert session.is_directory('/home/guest')

    def test_other_users_home_not_protected(self, session):
        assert session.rm('/home/guest2', True).ok

    def test_removing_cwd_moves_to_parent(self, session):
        session.mkdir('/tmp/a/b', True)
        session.cd('/tmp/a/b')
        assert session.rm('/tmp/a', True).ok
        assert session.pwd() == '/tmp'


class TestListFiles:

    def test_sorted_with_directory_suffix(self, session):
        session.touch('b.txt')
        session.mkdir('a')
        session.touch('.hidden')
        assert session.list_files().value == ['.hidden', 'a/', 'b.txt', 'docs/', 'motd.txt']

    def test_file_path_lists_itself(self, session):
        assert session.list_files('motd.txt').value == ['motd.txt']
        assert session.list_files('~/docs/readme.md').value == ['~/docs/readme.md']

    def test_directory_path(self, session):
        assert session.list_files('/').value == ['home/', 'tmp/']

    def test_missing_path(self, session):
        res = session.list_files('nope')
        assert error_kind(res) == FsError.NO_SUCH_FILE_OR_DIRECTORY
        assert str(res.error) == "cannot access 'nope': No such file or directory"


class TestXdgOpen:

    def test_dynamic_file_opens_bytes(self, session):
        assert session.xdg_open('motd.txt').value == OpenBlob('motd.txt', b'hello\n')

    def test_static_file_opens_source(self, session):
        session.create_or_open_file('page', StaticContent(b'<p>', 'https://example.com/page'))
        assert session.xdg_open('page').value == OpenUrl('https://example.com/page')

    def test_written_static_file_opens_bytes(self, session):
        file = session.create_or_open_file('page', StaticContent(b'<p>', 'https://example.com/page')).value
        file.write(b'local')
        assert session.xdg_open('page').value == OpenBlob('page', b'local')

    def test_directory(self, session):
        assert error_kind(session.xdg_open('docs')) == FsError.IS_A_DIRECTORY


class TestStoreDownload:

    def test_probes_for_unused_name(self, session):
        url = 'https://example.com/files/data.txt'
        names = [session.store_download(url, b'%d' % i).value for i in range(3)]
        assert names == ['data.txt', 'data.txt.1', 'data.txt.2']
        assert session.cat('data.txt').value == '0'
        assert session.cat('data.txt.2').value == '2'

    def test_never_overwrites(self, session):
        assert session.store_download('https://example.com/motd.txt', b'remote').value == 'motd.txt.1'
        assert session.cat('motd.txt').value == 'hello\n'

    def test_content_is_static(self, session):
        session.store_download('https://example.com/a.png', b'\x89PNG')
        assert session.xdg_open('a.png').value == OpenUrl('https://example.com/a.png')

    @pytest.mark.parametrize('url, name', [
        ('https://example.com/', 'index.html'),
        ('https://example.com', 'index.html'),
        ('https://example.com/a/b.tar.gz?x=1', 'b.tar.gz'),
        ('https://example.com/my%20file.txt', 'my file.txt'),
        ('http://h/%2E%2E', 'index.html'),
        ('http://h/..', 'index.html'),
        ('http://h/a/.', 'index.html'),
        ('http://h/a%2F..', 'index.html'),
        ('http://h/dir%2Fname.txt', 'name.txt'),
    ])
    def test_download_name(self, url, name):
        assert download_name(url) == name

    def test_dot_dot_download_is_reachable(self, session):
        assert session.store_download('http://h/%2E%2E', b'x').value == 'index.html'
        assert session.cat('index.html').value == 'x'
        assert session.rm('index.html').ok
