import numpy as np
import pytest

from molscf.density import (
    closed_shell_density,
    electron_count,
    idempotency_error,
    rms_density_change,
    spin_density,
)
from molscf.eigen import MOSystem, orthogonalizer, solve_roothaan
from molscf.errors import LinearDependenceError


def random_spd(n, seed=0):
    rng = np.random.default_rng(seed)
    M = rng.normal(size=(n, n))
    return M @ M.T + n * np.eye(n)


@pytest.mark.quick
def test_orthogonalizer_whitens_overlap():
    S = random_spd(5)
    S /= np.sqrt(np.outer(np.diag(S), np.diag(S)))
    X = orthogonalizer(S)
    assert np.allclose(X.T @ S @ X, np.eye(5), atol=1e-12)
    assert np.allclose(X, X.T, atol=1e-12)


@pytest.mark.quick
def test_roothaan_solution():
    S = random_spd(4, 1)
    S /= np.sqrt(np.outer(np.diag(S), np.diag(S)))
    rng = np.random.default_rng(2)
    F = rng.normal(size=(4, 4))
    F = F + F.T
    eps, C = solve_roothaan(F, orthogonalizer(S))
    assert np.all(np.diff(eps) >= 0)
    assert np.allclose(C.T @ S @ C, np.eye(4), atol=1e-10)
    assert np.allclose(F @ C, S @ C * eps, atol=1e-10)


@pytest.mark.quick
def test_linear_dependence_detected():
    S = np.array([[1.0, 1.0], [1.0, 1.0]])
    with pytest.raises(LinearDependenceError) as exc:
        orthogonalizer(S)
    assert exc.value.min_eigenvalue <= exc.value.tol


@pytest.mark.quick
def test_density_properties():
    S = random_spd(4, 3)
    S /= np.sqrt(np.outer(np.diag(S), np.diag(S)))
    rng = np.random.default_rng(4)
    F = rng.normal(size=(4, 4))
    F = F + F.T
    _, C = solve_roothaan(F, orthogonalizer(S))
    P = closed_shell_density(C, 2)
    assert electron_count(P, S) == pytest.approx(4.0, abs=1e-10)
    assert idempotency_error(P, S, 2.0) < 1e-10
    Pa = spin_density(C, 2)
    Pb = spin_density(C, 1)
    assert electron_count(np.array([Pa, Pb]), S) == pytest.approx(3.0, abs=1e-10)
    assert idempotency_error(Pa, S, 1.0) < 1e-10


@pytest.mark.quick
def test_rms_density_change_sums_spins():
    P0 = np.zeros((2, 3, 3))
    P1 = np.zeros((2, 3, 3))
    P1[0, 0, 0] = 3.0
    P1[1, 1, 1] = 6.0
    assert rms_density_change(P1, P0) == pytest.approx(1.0 + 2.0)
    assert rms_density_change(P1[0], P0[0]) == pytest.approx(1.0)


@pytest.mark.quick
def test_mo_system_views():
    C = np.eye(3)
    mo = MOSystem(C, np.array([-1.0, -0.2, 0.5]), 2)
    assert mo.occupied.shape == (3, 2)
    assert mo.virtual.shape == (3, 1)
    assert mo.homo_lumo_gap == pytest.approx(0.7)
    assert MOSystem(C, np.array([-1.0, 0.0, 1.0]), 3).homo_lumo_gap is None
