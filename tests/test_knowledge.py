"""
Tests for knowledge.py and its use by CCD.
"""
from __future__ import print_function
import numpy as np
import pytest

from ccdpag.ccd import CCD
from ccdpag.knowledge import Knowledge

from fixed_oracle import FixedOracle


def test_knowledge_links():
    knowledge = Knowledge(forbidden=[(0, 1)], required=[(2, 1)])
    assert not knowledge.is_empty()
    assert knowledge.is_required(2, 1)
    assert not knowledge.is_required(1, 2)
    assert knowledge.is_forbidden(0, 1)
    # The reverse of a required link is forbidden
    assert knowledge.is_forbidden(1, 2)
    assert not knowledge.is_forbidden(1, 0)


def test_knowledge_empty():
    knowledge = Knowledge()
    assert knowledge.is_empty()
    knowledge.set_required(0, 1)
    assert not knowledge.is_empty()


@pytest.mark.parametrize("forbidden, required", [
    ([(0, 1)], [(0, 1)]),
    ([], [(0, 1), (1, 0)]),
])
def test_knowledge_conflicts(forbidden, required):
    with pytest.raises(ValueError):
        Knowledge(forbidden=forbidden, required=required)


def test_knowledge_forbid_required():
    knowledge = Knowledge(required=[(0, 1)])
    with pytest.raises(ValueError):
        knowledge.set_forbidden(0, 1)


@pytest.mark.parametrize("knowledge, expected", [
    (None, "knowledge = none"),
    (Knowledge(), "knowledge = none"),
    (Knowledge(forbidden=[(0, 1)]), "knowledge = given"),
])
def test_knowledge_in_verbose_header(knowledge, expected, capsys):
    ccd = CCD(FixedOracle(3), verbosity=1)
    if knowledge is not None:
        ccd.set_knowledge(knowledge)
    ccd.run_ccd(np.zeros((3, 3), dtype=bool))
    assert expected in capsys.readouterr().out
