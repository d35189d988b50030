"""Tests for turnwear.core.design_records — design creation and frame commit."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from turnwear.core.design_records import DesignRecordManager
from turnwear.core.errors import DesignCreationError, MetadataCommitError
from turnwear.core.stores import FrameRecord


def _records(design_id: str, count: int) -> list[FrameRecord]:
    return [FrameRecord(design_id, f"angle-{i}", f"u/{design_id}/angle-{i}.png") for i in range(count)]


class TestCreateDesign:
    def test_returns_store_id(self, design_store):
        design_id = DesignRecordManager(design_store).create_design("user-1", "red suit")
        assert design_store.designs[design_id].prompt == "red suit"
        assert design_store.designs[design_id].owner_id == "user-1"

    def test_store_failure_is_design_creation_error(self, design_store):
        design_store.fail_insert_design = True
        with pytest.raises(DesignCreationError) as exc_info:
            DesignRecordManager(design_store).create_design("user-1", "red suit")
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_empty_id_is_design_creation_error(self):
        store = MagicMock()
        store.insert_design.return_value = ""
        with pytest.raises(DesignCreationError):
            DesignRecordManager(store).create_design("user-1", "red suit")


class TestCommitFrames:
    def test_commits_all_records_in_one_call(self, design_store):
        manager = DesignRecordManager(design_store)
        design_id = manager.create_design("user-1", "suit")

        assert manager.commit_frames(design_id, _records(design_id, 3)) is None
        assert len(design_store.insert_calls) == 1
        assert len(design_store.designs[design_id].frames) == 3

    def test_nothing_to_commit_skips_store(self, design_store):
        assert DesignRecordManager(design_store).commit_frames("d", []) is None
        assert design_store.insert_calls == []

    def test_failure_returned_not_raised(self, design_store):
        manager = DesignRecordManager(design_store)
        design_id = manager.create_design("user-1", "suit")
        design_store.fail_insert_frames = True

        warning = manager.commit_frames(design_id, _records(design_id, 4))

        assert isinstance(warning, MetadataCommitError)
        assert warning.design_id == design_id
        assert warning.record_count == 4
