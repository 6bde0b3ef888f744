#!/usr/bin/env python3
"""
Tests for the node arena in webterm.filesystem.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from webterm.filesystem import (
    DirNode, DynamicContent, FileNode, FileSystem, RootNode, StaticContent,
)


@pytest.fixture
def fs():
    """A small tree: /home/guest/notes.txt and /tmp."""
    return FileSystem.from_tree({
        'home': {'guest': {'notes.txt': 'remember\n'}},
        'tmp': {},
    })


class TestArena:
    """Handles, parent links and path reconstruction."""

    def test_root_is_handle_zero(self):
        fs = FileSystem()
        root = fs.node(FileSystem.ROOT)
        assert isinstance(root, RootNode)
        assert root.parent is None
        assert fs.path(FileSystem.ROOT) == '/'

    def test_parent_links_point_at_container(self, fs):
        home = fs.child(FileSystem.ROOT, 'home')
        guest = fs.child(home, 'guest')
        notes = fs.child(guest, 'notes.txt')
        assert fs.node(guest).parent == home
        assert fs.node(notes).parent == guest
        assert fs.path(notes) == '/home/guest/notes.txt'
        assert fs.path_segments(guest) == ['home', 'guest']

    def test_from_tree_content_types(self):
        fs = FileSystem.from_tree({
            'a': 'text',
            'b': b'\x00\x01',
            'c': StaticContent(b'remote', 'https://example.com/c'),
        })
        a, b, c = (fs.node(fs.child(FileSystem.ROOT, n)) for n in 'abc')
        assert a.content == DynamicContent(b'text')
        assert b.content == DynamicContent(b'\x00\x01')
        assert c.content.url == 'https://example.com/c'

    def test_children_is_a_copy(self, fs):
        children = fs.children(FileSystem.ROOT)
        children['bogus'] = 99
        assert fs.child(FileSystem.ROOT, 'bogus') is None

    def test_handles_are_not_reused(self, fs):
        tmp = fs.child(FileSystem.ROOT, 'tmp')
        first = fs.add_file(tmp, 'x')
        fs.remove(first)
        second = fs.add_file(tmp, 'x')
        assert second != first

    def test_is_ancestor(self, fs):
        home = fs.child(FileSystem.ROOT, 'home')
        guest = fs.child(home, 'guest')
        tmp = fs.child(FileSystem.ROOT, 'tmp')
        assert fs.is_ancestor(home, guest)
        assert fs.is_ancestor(guest, guest)
        assert fs.is_ancestor(FileSystem.ROOT, guest)
        assert not fs.is_ancestor(tmp, guest)


class TestMutation:
    """Adding and removing nodes."""

    def test_duplicate_names_rejected(self, fs):
        with pytest.raises(ValueError):
            fs.add_dir(FileSystem.ROOT, 'tmp')
        with pytest.raises(ValueError):
            fs.add_file(FileSystem.ROOT, 'home')

    def test_add_to_file_rejected(self, fs):
        guest = fs.child(fs.child(FileSystem.ROOT, 'home'), 'guest')
        notes = fs.child(guest, 'notes.txt')
        with pytest.raises(ValueError):
            fs.add_file(notes, 'x')

    def test_remove_drops_whole_subtree(self, fs):
        home = fs.child(FileSystem.ROOT, 'home')
        before = len(fs.nodes)
        removed = fs.remove(home)
        assert removed == 3
        assert len(fs.nodes) == before - 3
        assert fs.child(FileSystem.ROOT, 'home') is None
        assert home not in fs.nodes

    def test_remove_very_deep_subtree(self, fs):
        tmp = fs.child(FileSystem.ROOT, 'tmp')
        handle = tmp
        for _ in range(5000):
            handle = fs.add_dir(handle, 'a')
        fs.add_file(handle, 'leaf')
        top = fs.child(tmp, 'a')
        assert len(list(fs.walk(top))) == 5001
        assert fs.remove(top) == 5001
        assert fs.children(tmp) == {}

    def test_walk_visits_parents_first(self, fs):
        home = fs.child(FileSystem.ROOT, 'home')
        guest = fs.child(home, 'guest')
        notes = fs.child(guest, 'notes.txt')
        assert list(fs.walk(home)) == [home, guest, notes]

    def test_remove_root_rejected(self, fs):
        with pytest.raises(ValueError):
            fs.remove(FileSystem.ROOT)

    def test_new_nodes_have_expected_types(self, fs):
        tmp = fs.child(FileSystem.ROOT, 'tmp')
        d = fs.node(fs.add_dir(tmp, 'd'))
        f = fs.node(fs.add_file(tmp, 'f'))
        assert isinstance(d, DirNode) and d.is_dir() and not d.is_file()
        assert isinstance(f, FileNode) and f.is_file() and not f.is_dir()
        assert f.content == DynamicContent(b'')


class TestFileContent:
    """Writes always leave a file with dynamic content."""

    def test_write_replaces_static_content(self):
        node = FileNode(name='page.html', content=StaticContent(b'<html>', 'https://example.com/'))
        node.write('new')
        assert node.content == DynamicContent(b'new')

    def test_append_converts_static_content(self):
        node = FileNode(name='page.html', content=StaticContent(b'abc', 'https://example.com/'))
        node.append(b'def')
        assert node.content == DynamicContent(b'abcdef')
        assert node.read() == b'abcdef'
