"""
Unit tests for generation retention (genbackup/backup/retention.py).

Tests listing, numeric ordering and pruning of an entry's bundles.
"""

import os
from unittest.mock import patch

import pytest

from genbackup.backup.retention import (
    DeletionFailed,
    Generation,
    GenerationListingFailed,
    MalformedGenerationName,
    PruneFailed,
    RetentionManager,
    generation_key,
    parse_generation
)


def remaining(directory):
    return sorted(p.name for p in directory.iterdir())


class TestParseGeneration:
    """Test timestamp extraction from bundle names."""

    def test_parse(self):
        assert parse_generation('db.tar.gz.1700000000', 'db') == 1700000000

    @pytest.mark.parametrize("filename", [
        'db.tar.gz.',
        'db.tar.gz.12abc',
        'db.tar.gz.-5',
        'db.tar.gz.+5',
        'db.tar.gz. 5',
        'db.tar.gz.1_000',
        'db.tar.gz.100.partial',
        'other.tar.gz.100',
    ])
    def test_malformed(self, filename):
        with pytest.raises(MalformedGenerationName) as exc_info:
            parse_generation(filename, 'db')

        assert exc_info.value.filename == filename

    def test_generation_key_is_numeric(self):
        gens = [
            Generation('db', 10000000000, '/bk/db.tar.gz.10000000000'),
            Generation('db', 9999999999, '/bk/db.tar.gz.9999999999'),
        ]

        assert sorted(gens, key=generation_key)[0].timestamp == 9999999999


class TestListGenerations:
    """Test RetentionManager.list_generations."""

    def test_sorted_oldest_first(self, destination, generations):
        generations(destination, 'db', [300, 100, 200])

        result = RetentionManager().list_generations(str(destination), 'db')

        assert [g.timestamp for g in result] == [100, 200, 300]
        assert result[0].path == os.path.join(str(destination), 'db.tar.gz.100')
        assert result[0].filename == 'db.tar.gz.100'

    def test_numeric_not_lexical_order(self, destination, generations):
        """'10000000000' sorts after '9999999999' despite comparing lower as text."""
        generations(destination, 'db', [10000000000, 9999999999, 19])

        result = RetentionManager().list_generations(str(destination), 'db')

        assert [g.timestamp for g in result] == [19, 9999999999, 10000000000]

    def test_only_matching_entry(self, destination, generations):
        generations(destination, 'db', [1, 2])
        generations(destination, 'db2', [3])
        generations(destination, 'www', [4])
        (destination / 'db.tar.gz').write_bytes(b'')
        (destination / 'notes.txt').write_bytes(b'')

        result = RetentionManager().list_generations(str(destination), 'db')

        assert [g.timestamp for g in result] == [1, 2]

    def test_empty_destination(self, destination):
        assert RetentionManager().list_generations(str(destination), 'db') == []

    def test_malformed_suffix(self, destination, generations):
        generations(destination, 'db', [100])
        (destination / 'db.tar.gz.latest').write_bytes(b'')

        with pytest.raises(MalformedGenerationName, match='db.tar.gz.latest'):
            RetentionManager().list_generations(str(destination), 'db')

    def test_listing_failure(self, tmp_path):
        with pytest.raises(GenerationListingFailed):
            RetentionManager().list_generations(str(tmp_path / 'missing'), 'db')


class TestPrune:
    """Test RetentionManager.prune."""

    def test_prune_keeps_newest(self, destination, generations):
        generations(destination, 'db', [100, 200, 300, 400, 500])

        removed = RetentionManager().prune(str(destination), 'db', 2)

        assert remaining(destination) == ['db.tar.gz.400', 'db.tar.gz.500']
        assert [os.path.basename(p) for p in removed] == [
            'db.tar.gz.100', 'db.tar.gz.200', 'db.tar.gz.300'
        ]

    def test_prune_under_limit(self, destination, generations):
        generations(destination, 'db', [100, 200])

        removed = RetentionManager().prune(str(destination), 'db', 5)

        assert removed == []
        assert remaining(destination) == ['db.tar.gz.100', 'db.tar.gz.200']

    def test_prune_exactly_at_limit(self, destination, generations):
        generations(destination, 'db', [100, 200])

        assert RetentionManager().prune(str(destination), 'db', 2) == []

    def test_prune_keep_zero_removes_all(self, destination, generations):
        generations(destination, 'db', [1, 2, 3])

        removed = RetentionManager().prune(str(destination), 'db', 0)

        assert len(removed) == 3
        assert remaining(destination) == []

    def test_prune_numeric_order(self, destination, generations):
        generations(destination, 'db', [9999999999, 10000000000])

        RetentionManager().prune(str(destination), 'db', 1)

        assert remaining(destination) == ['db.tar.gz.10000000000']

    def test_prune_leaves_other_entries(self, destination, generations):
        generations(destination, 'db', [1, 2, 3])
        generations(destination, 'www', [1, 2, 3])

        RetentionManager().prune(str(destination), 'db', 1)

        assert remaining(destination) == [
            'db.tar.gz.3', 'www.tar.gz.1', 'www.tar.gz.2', 'www.tar.gz.3'
        ]

    def test_prune_stops_on_first_deletion_failure(self, destination, generations):
        generations(destination, 'db', [100, 200, 300, 400])

        with patch('genbackup.backup.retention.os.remove',
                   side_effect=PermissionError(13, 'Permission denied')) as mock_remove:
            with pytest.raises(DeletionFailed, match='Permission denied'):
                RetentionManager().prune(str(destination), 'db', 1)

        # Only the oldest was attempted
        mock_remove.assert_called_once_with(os.path.join(str(destination), 'db.tar.gz.100'))
        assert len(remaining(destination)) == 4

    def test_prune_failure_after_partial_progress(self, destination, generations):
        generations(destination, 'db', [100, 200, 300, 400])
        real_remove = os.remove

        def flaky_remove(path):
            if path.endswith('.200'):
                raise FileNotFoundError(2, 'No such file or directory', path)
            real_remove(path)

        with patch('genbackup.backup.retention.os.remove', side_effect=flaky_remove):
            with pytest.raises(DeletionFailed):
                RetentionManager().prune(str(destination), 'db', 1)

        assert remaining(destination) == ['db.tar.gz.200', 'db.tar.gz.300', 'db.tar.gz.400']

    def test_prune_malformed_deletes_nothing(self, destination, generations):
        generations(destination, 'db', [100, 200, 300])
        (destination / 'db.tar.gz.bad').write_bytes(b'')

        with pytest.raises(PruneFailed):
            RetentionManager().prune(str(destination), 'db', 1)

        assert len(remaining(destination)) == 4

    def test_prune_logs_deletions(self, destination, generations, caplog):
        generations(destination, 'db', [1, 2])

        with caplog.at_level('INFO', logger='genbackup.backup.retention'):
            RetentionManager().prune(str(destination), 'db', 1)

        assert caplog.messages == ['Deleted old generation: db.tar.gz.1']


class TestEnforceAll:
    """Test pruning every entry of a configuration."""

    def test_enforce_all(self, make_config, destination, generations):
        generations(destination, 'db', [1, 2, 3])
        generations(destination, 'www', [1])
        config = make_config([('db', '/data/db'), ('www', '/srv/www')], keep_generations=1)

        summary = RetentionManager().enforce_all(config)

        assert summary == {'entries_processed': 2, 'deleted': 2, 'errors': []}
        assert remaining(destination) == ['db.tar.gz.3', 'www.tar.gz.1']

    def test_enforce_all_continues_after_error(self, make_config, destination, generations):
        generations(destination, 'db', [1])
        (destination / 'db.tar.gz.oops').write_bytes(b'')
        generations(destination, 'www', [1, 2])
        config = make_config([('db', '/data/db'), ('www', '/srv/www')], keep_generations=1)

        summary = RetentionManager().enforce_all(config)

        assert summary['entries_processed'] == 1
        assert summary['deleted'] == 1
        assert len(summary['errors']) == 1
        assert 'db' in summary['errors'][0]
        assert 'www.tar.gz.1' not in remaining(destination)
