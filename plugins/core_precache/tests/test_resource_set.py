# plugins/core_precache/tests/test_resource_set.py
import logging

from plugins.core_precache.contracts import AddOutcome
from plugins.core_precache.resource_set import ResourceSet


def test_add_same_path_twice_reports_duplicate():
    resource_set = ResourceSet()

    assert resource_set.add("models/crate.vmdl") is AddOutcome.ADDED
    assert resource_set.add("models/crate.vmdl") is AddOutcome.DUPLICATE
    assert resource_set.count == 1


def test_paths_that_normalize_identically_are_duplicates():
    resource_set = ResourceSet()

    assert resource_set.add("models\\crate.vmdl_c").added
    assert resource_set.add("models/crate.vmdl") is AddOutcome.DUPLICATE
    assert resource_set.add("models/crate.vmdl_c") is AddOutcome.DUPLICATE
    assert resource_set.all() == ("models/crate.vmdl",)


def test_unsupported_type_is_never_stored(caplog):
    resource_set = ResourceSet()

    with caplog.at_level(logging.ERROR):
        for _ in range(3):
            assert resource_set.add("scripts/game.lua") is AddOutcome.REJECTED_TYPE

    assert resource_set.count == 0
    assert "scripts/game.lua" not in resource_set
    assert "Resource type 'lua' can not be precached" in caplog.text


def test_rejection_is_not_a_duplicate():
    outcome = ResourceSet().add("README")
    assert outcome is AddOutcome.REJECTED_TYPE
    assert outcome is not AddOutcome.DUPLICATE
    assert not outcome.added


def test_remove_normalizes_before_lookup():
    resource_set = ResourceSet()
    resource_set.add("materials/floor.vmat_c")

    assert resource_set.remove("materials\\floor.vmat") is True
    assert resource_set.remove("materials/floor.vmat") is False
    assert len(resource_set) == 0


def test_all_preserves_insertion_order():
    resource_set = ResourceSet()
    paths = ["sounds/b.vsnd", "models/a.vmdl", "particles/c.vpcf"]
    for path in paths:
        resource_set.add(path)

    assert resource_set.all() == tuple(paths)
    assert list(resource_set) == paths
    # 同一周期内重复枚举结果一致
    assert resource_set.all() == resource_set.all()


def test_clear_empties_the_set():
    resource_set = ResourceSet()
    resource_set.add("models/a.vmdl")
    resource_set.clear()
    assert resource_set.count == 0


def test_doubled_compiled_marker_is_rejected():
    resource_set = ResourceSet()

    assert resource_set.add("models/x.vmdl_c_c") is AddOutcome.REJECTED_TYPE
    assert resource_set.count == 0
