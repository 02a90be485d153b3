"""Tests for the discovery of root test definitions."""

import re
from textwrap import dedent
from types import ModuleType
from typing import TYPE_CHECKING

import pytest

from pytest_dyna.discovery import DynaTest, RootBuild, discover, find_roots
from pytest_dyna.errors import BuildError, DuplicateNameError, DynaWarning
from pytest_dyna.nodes import Group

if TYPE_CHECKING:
    from pathlib import Path

    from pytest import MonkeyPatch


ROOTS_MODULE = '''
from pytest_dyna import DynaTest

VERSION = '1.0'


class CalculatorTest(DynaTest):
    def build(self, root):
        root.test('adds', lambda: None)
        root.group('negative', lambda group: group.test('subtracts', lambda: None))


class BrokenTest(DynaTest):
    def build(self, root):
        raise ValueError('cannot build')


class Base(DynaTest):
    abstract = True


class DerivedTest(Base):
    def build(self, root):
        root.test('derived', lambda: None)
'''


@pytest.fixture
def roots_module(tmp_path: 'Path', monkeypatch: 'MonkeyPatch') -> str:
    """Provide the name of an importable module declaring roots."""
    name = f'dyna_roots_{tmp_path.name}'.replace('-', '_')
    (tmp_path / f'{name}.py').write_text(dedent(ROOTS_MODULE))
    monkeypatch.syspath_prepend(str(tmp_path))

    return name


def test_create_root() -> None:
    """Build a root named after the class from its `build` method."""
    class CalculatorTest(DynaTest):
        def build(self, root: Group) -> None:
            root.test('adds', lambda: None)

    root = CalculatorTest.create_root()

    assert root.name == 'CalculatorTest'
    assert [child.name for child in root.children] == ['adds']
    assert not root.is_locked
    assert root.location is not None
    assert root.location.filename == __file__


def test_create_disabled_root() -> None:
    """Disable the whole tree with the `enabled` class attribute."""
    class DisabledTest(DynaTest):
        enabled = False

        def build(self, root: Group) -> None:
            root.test('test', lambda: None)

    root = DisabledTest.create_root()

    assert not any(node.enabled for node in root.walk())


@pytest.mark.parametrize('error', (
    pytest.param(ValueError('cannot build'), id='any error'),
    pytest.param(DuplicateNameError('x'), id='construction error'),
))
def test_create_root_failure(error: Exception) -> None:
    """Wrap every error raised while building into a `BuildError`."""
    class BrokenTest(DynaTest):
        def build(self, root: Group) -> None:
            raise error

    with pytest.raises(BuildError, match=r"Failed to build test tree 'BrokenTest'") as info:
        BrokenTest.create_root()

    assert info.value.root_name == 'BrokenTest'
    assert info.value.cause is error
    assert info.value.__cause__ is error
    assert info.value.context is not None
    assert info.value.context['filename'] == __file__


def test_not_implemented_build() -> None:
    """Fail to build a definition without `build`."""
    class EmptyTest(DynaTest):
        pass

    with pytest.raises(BuildError) as info:
        EmptyTest.create_root()

    assert isinstance(info.value.cause, NotImplementedError)


def test_is_root() -> None:
    """Accept concrete subclasses only."""
    class Base(DynaTest):
        abstract = True

    class Concrete(Base):
        pass

    assert DynaTest.is_root(Concrete)
    assert not DynaTest.is_root(Base)
    assert not DynaTest.is_root(DynaTest)
    assert not DynaTest.is_root(Concrete())
    assert not DynaTest.is_root(object)


def test_find_roots_skips_imported() -> None:
    """Find definitions declared in a module, in declaration order."""
    class First(DynaTest):
        pass

    class Second(DynaTest):
        pass

    class Imported(DynaTest):
        pass

    module = ModuleType('fake_roots')
    for definition in (First, Second):
        definition.__module__ = module.__name__
        setattr(module, definition.__name__, definition)
    module.Imported = Imported  # type: ignore[attr-defined]

    assert find_roots(module) == [First, Second]


def test_discover_module(roots_module: str) -> None:
    """Build every root of a module, reporting broken ones."""
    builds = list(discover([roots_module]))

    assert [build.name for build in builds] == ['CalculatorTest', 'BrokenTest', 'DerivedTest']

    calculator, broken, derived = builds
    assert calculator.error is None
    assert calculator.tree is not None
    assert calculator.tree.is_locked
    assert [node.name for node in calculator.tree.walk()] == [
        'CalculatorTest', 'adds', 'negative', 'subtracts',
    ]

    assert broken.tree is None
    assert isinstance(broken.error, BuildError)
    assert isinstance(broken.error.cause, ValueError)

    assert derived.tree is not None


def test_discover_once(roots_module: str) -> None:
    """Build a definition reached through several targets once."""
    builds = list(discover([roots_module, f'{roots_module}:CalculatorTest', roots_module]))

    assert [build.name for build in builds] == ['CalculatorTest', 'BrokenTest', 'DerivedTest']
    assert {build.module for build in builds} == {roots_module}


def test_discover_class(roots_module: str) -> None:
    """Build a single root referenced as `module:Class`."""
    builds = list(discover([f'{roots_module}:DerivedTest']))

    assert len(builds) == 1
    assert builds[0].name == 'DerivedTest'
    assert builds[0].tree is not None


@pytest.mark.parametrize('suffix, cause, message', (
    pytest.param(':Missing', AttributeError, r'Missing', id='missing class'),
    pytest.param(':Base', TypeError, r'Base.* is abstract', id='abstract class'),
    pytest.param(':DynaTest', TypeError, r'is the DynaTest base class', id='base class'),
    pytest.param(':VERSION', TypeError, r'is not a DynaTest subclass', id='not a class'),
))
def test_discover_invalid_class(roots_module: str, suffix: str,
                                cause: type[Exception], message: str) -> None:
    """Report an unresolvable reference as a broken root."""
    target = f'{roots_module}{suffix}'

    builds = list(discover([target]))

    assert len(builds) == 1
    assert builds[0].name == target
    assert isinstance(builds[0].error, BuildError)
    assert isinstance(builds[0].error.cause, cause)
    assert re.search(message, str(builds[0].error.cause))


def test_discover_missing_module() -> None:
    """Report a module that can not be imported as a broken root."""
    builds = list(discover(['dyna_no_such_module']))

    assert len(builds) == 1
    assert isinstance(builds[0].error, BuildError)
    assert isinstance(builds[0].error.cause, ModuleNotFoundError)


def test_discover_without_roots() -> None:
    """Warn about a module without definitions."""
    with pytest.warns(DynaWarning, match=r"No test definitions found in 'textwrap'"):
        builds = list(discover(['textwrap']))

    assert builds == []


def test_root_build_repr() -> None:
    """Show the name and the state of a build result."""
    assert repr(RootBuild('Root')) == "RootBuild('Root', ok)"
    assert repr(RootBuild('Root', error=BuildError('Root', ValueError()))) == "RootBuild('Root', broken)"
