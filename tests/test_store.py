"""Tests for the repository directory and live value store."""

import pytest

from starboard.errors import RepositoryNotFoundError
from starboard.live import Directory, StarStore
from starboard.models import LiveStarRecord, RepositorySummary

from conftest import repo


class TestDirectory:
    """Tests for the immutable directory snapshot."""
    
    def test_preserves_order(self) -> None:
        """Test insertion order is display order."""
        directory = Directory.build([repo(3), repo(1), repo(2)])
        assert [r.id for r in directory] == [3, 1, 2]
    
    def test_lookup(self) -> None:
        """Test lookup by id."""
        directory = Directory.build([repo(1, 10), repo(2, 20)])
        assert directory.get(2).star_count == 20
        assert directory.get(99) is None
        assert 1 in directory
        assert 99 not in directory
        assert len(directory) == 2
    
    def test_duplicate_ids_rejected(self) -> None:
        """Test the same id cannot appear twice."""
        with pytest.raises(ValueError, match="Duplicate"):
            Directory.build([repo(1), repo(1)])


class TestStarStore:
    """Tests for StarStore."""
    
    def test_baseline_without_live_value(self) -> None:
        """Test the baseline is used when nothing was pushed."""
        store = StarStore([repo(1, 10)])
        assert store.current_star_count(1) == 10
        assert store.live_value(1) is None
    
    def test_live_value_overrides_baseline(self) -> None:
        """Test a pushed value wins over the baseline."""
        store = StarStore([repo(1, 10)])
        assert store.set_live(1, 42) is True
        assert store.current_star_count(1) == 42
    
    def test_unknown_id_raises(self) -> None:
        """Test ids outside the directory are reported as not found."""
        store = StarStore([repo(1, 10)])
        with pytest.raises(RepositoryNotFoundError) as excinfo:
            store.current_star_count(2)
        assert excinfo.value.repository_id == 2
    
    def test_set_live_refuses_unknown_id(self) -> None:
        """Test a push for a repository not on screen is not stored."""
        store = StarStore([repo(1, 10)])
        assert store.set_live(2, 99) is False
        assert store.live_records() == []
    
    def test_clear_live_keeps_directory(self) -> None:
        """Test clear_live only drops the overrides."""
        store = StarStore([repo(1, 10), repo(2, 20)])
        store.set_live(1, 11)
        store.set_live(2, 21)
        store.clear_live()
        assert store.current_star_count(1) == 10
        assert store.current_star_count(2) == 20
        assert len(store) == 2
    
    def test_replace_directory_swaps_snapshot(self) -> None:
        """Test a reader holding the old snapshot keeps a complete old list."""
        store = StarStore([repo(1, 10), repo(2, 20)])
        old = store.directory
        store.replace_directory([repo(3, 30)])
        assert [r.id for r in old] == [1, 2]
        assert [r.id for r in store.directory] == [3]
        assert 1 not in store
    
    def test_replace_directory_drops_live_values_for_removed_ids(self) -> None:
        """Test live values never outlive their repository."""
        store = StarStore([repo(1, 10), repo(2, 20)])
        store.set_live(1, 15)
        store.set_live(2, 25)
        store.replace_directory([repo(2, 22), repo(3, 30)])
        assert store.live_records() == [LiveStarRecord(2, 25)]
        store.replace_directory([repo(1, 10)])
        assert store.current_star_count(1) == 10
    
    def test_rows_in_display_order(self) -> None:
        """Test rows pair each repository with its effective count."""
        store = StarStore([repo(2, 20), repo(1, 10)])
        store.set_live(1, 12)
        assert [(r.id, stars) for r, stars in store.rows()] == [(2, 20), (1, 12)]


class TestRepositorySummary:
    """Tests for the RepositorySummary model."""
    
    def test_negative_star_count_rejected(self) -> None:
        """Test baselines are non-negative."""
        with pytest.raises(ValueError):
            RepositorySummary(id=1, name="a", star_count=-1)
    
    def test_full_name(self) -> None:
        """Test owner/name format."""
        assert RepositorySummary(id=1, name="swift", owner="swiftlang").full_name == "swiftlang/swift"
        assert RepositorySummary(id=1, name="swift").full_name == "swift"
