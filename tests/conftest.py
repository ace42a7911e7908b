import numpy as np
import pytest

from molscf.basis import build_basis
from molscf.integrals import overlap_matrix
from molscf.molecule import Molecule

H2_BOND = 1.4


@pytest.fixture
def h2():
    return Molecule.from_atoms([("H", (0.0, 0.0, 0.0)), ("H", (0.0, 0.0, H2_BOND))])


@pytest.fixture
def h2_basis(h2):
    return build_basis(h2, "sto-3g")


@pytest.fixture
def h2_density(h2_basis):
    """H2/STO-3G 的 σg 闭壳层密度（由对称性唯一确定）。"""
    S = overlap_matrix(h2_basis)
    c = np.array([1.0, 1.0]) / np.sqrt(2.0 * (1.0 + S[0, 1]))
    return 2.0 * np.outer(c, c)


@pytest.fixture
def lih():
    return Molecule.from_atoms([("Li", (0.0, 0.0, 0.0)), ("H", (0.0, 0.0, 3.015))])
