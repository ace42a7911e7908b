import numpy as np
import pytest

from molscf.diis import DIIS, commutator_error, solve_linear_system
from molscf.errors import SingularSystemError


@pytest.mark.quick
def test_linear_solver_matches_numpy():
    rng = np.random.default_rng(7)
    A = rng.normal(size=(5, 5)) + 5 * np.eye(5)
    b = rng.normal(size=5)
    assert np.allclose(solve_linear_system(A, b), np.linalg.solve(A, b), atol=1e-12)


@pytest.mark.quick
def test_linear_solver_needs_pivoting():
    A = np.array([[0.0, 1.0], [1.0, 0.0]])
    b = np.array([2.0, 3.0])
    assert np.allclose(solve_linear_system(A, b), [3.0, 2.0])


@pytest.mark.quick
def test_linear_solver_singular():
    A = np.array([[1.0, 2.0], [2.0, 4.0]])
    with pytest.raises(SingularSystemError) as exc:
        solve_linear_system(A, np.array([1.0, 1.0]))
    assert abs(exc.value.pivot) < 1e-12
    assert isinstance(exc.value, ArithmeticError)


@pytest.mark.quick
def test_needs_two_pairs():
    diis = DIIS()
    assert diis.extrapolate() is None
    diis.push(np.eye(2), np.ones((2, 2)))
    assert diis.extrapolate() is None


@pytest.mark.quick
def test_singular_history_falls_back():
    diis = DIIS()
    e = np.array([[0.0, 1.0], [-1.0, 0.0]])
    diis.push(np.eye(2), e)
    diis.push(2 * np.eye(2), e)
    assert diis.extrapolate() is None
    assert diis.last_coefficients is None


@pytest.mark.quick
def test_capacity_evicts_oldest():
    diis = DIIS(capacity=3)
    for k in range(5):
        diis.push(k * np.eye(2), (k + 1) * np.eye(2))
    assert len(diis) == 3
    diis.reset()
    assert len(diis) == 0


@pytest.mark.quick
def test_push_copies_inputs():
    diis = DIIS()
    F = np.eye(2)
    e = np.array([[1.0, 0.0], [0.0, -1.0]])
    diis.push(F, e)
    F[0, 0] = 100.0
    e[0, 0] = 100.0
    diis.push(np.eye(2), 2 * np.array([[0.0, 1.0], [1.0, 0.0]]))
    out = diis.extrapolate()
    assert out is not None
    assert np.max(np.abs(out)) < 10.0


@pytest.mark.quick
def test_extrapolation_cancels_linear_error():
    F_star = np.array([[1.0, 0.2], [0.2, -0.5]])
    d = np.array([[0.3, -0.1], [-0.1, 0.05]])
    diis = DIIS()
    diis.push(F_star + d, d)
    diis.push(F_star - 2 * d, -2 * d)
    out = diis.extrapolate()
    assert np.allclose(out, F_star, atol=1e-12)
    assert np.allclose(diis.last_coefficients, [2.0 / 3.0, 1.0 / 3.0], atol=1e-12)
    assert diis.last_error_norm == pytest.approx(0.0, abs=1e-12)


@pytest.mark.quick
def test_coefficients_sum_to_one():
    rng = np.random.default_rng(11)
    diis = DIIS(capacity=4)
    for _ in range(4):
        diis.push(rng.normal(size=(3, 3)), rng.normal(size=(3, 3)))
    assert diis.extrapolate() is not None
    assert np.sum(diis.last_coefficients) == pytest.approx(1.0, abs=1e-12)


@pytest.mark.quick
def test_commutator_vanishes_for_eigen_density():
    S = np.array([[1.0, 0.4], [0.4, 1.0]])
    F = np.array([[-1.0, -0.6], [-0.6, -1.0]])
    c = np.array([1.0, 1.0]) / np.sqrt(2 * 1.4)
    P = 2 * np.outer(c, c)
    err = commutator_error(F, P, S)
    assert np.allclose(err, 0.0, atol=1e-14)
    assert np.allclose(err, -err.T)


@pytest.mark.quick
def test_error_norm_non_increasing_on_linear_fixed_point():
    # x = g(x) = A x + b，不动点 x* = (I - A)^{-1} b
    rng = np.random.default_rng(21)
    Q, _ = np.linalg.qr(rng.normal(size=(6, 6)))
    A = Q @ np.diag([0.1, 0.25, 0.4, 0.55, 0.7, 0.85]) @ Q.T
    b = rng.normal(size=6)
    x_star = np.linalg.solve(np.eye(6) - A, b)

    diis = DIIS(capacity=8)
    x = np.zeros(6)
    norms = []
    for _ in range(5):
        gx = A @ x + b
        diis.push(gx, gx - x)
        out = diis.extrapolate()
        if out is None:
            x = gx
            continue
        norms.append(diis.last_error_norm)
        x = out

    assert len(norms) == 4
    for prev, cur in zip(norms, norms[1:]):
        assert cur <= prev * (1 + 1e-10)
    assert np.linalg.norm(x - x_star) < np.linalg.norm(x_star)
