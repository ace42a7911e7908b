import numpy as np
import pytest

from molscf.basis import Shell
from molscf.integrals import (
    core_hamiltonian,
    kinetic_block,
    kinetic_matrix,
    kinetic_ss,
    nuclear_block,
    nuclear_matrix,
    nuclear_ss,
    overlap_block,
    overlap_matrix,
    overlap_ss,
)

A = np.array([0.1, -0.3, 0.2])
B = np.array([-0.4, 0.5, 1.1])
C = np.array([0.7, 0.2, -0.6])
ALPHA = 1.1
BETA = 0.45


def s_shell(alpha, center):
    return Shell(l=0, center=center, exponents=[alpha], coefficients=[1.0])


def p_shell(alpha, center):
    return Shell(l=1, center=center, exponents=[alpha], coefficients=[1.0])


def d_dA(func, k, h=1e-5):
    """对 A 的第 k 个分量做中心差分。"""
    step = np.zeros(3)
    step[k] = h
    return (func(A + step) - func(A - step)) / (2 * h)


@pytest.mark.integral
@pytest.mark.quick
def test_s_blocks_match_closed_forms():
    sa, sb = s_shell(ALPHA, A), s_shell(BETA, B)
    assert overlap_block(sa, sb)[0, 0] == pytest.approx(overlap_ss(ALPHA, A, BETA, B), rel=1e-12)
    assert kinetic_block(sa, sb)[0, 0] == pytest.approx(kinetic_ss(ALPHA, A, BETA, B), rel=1e-12)
    v = nuclear_block(sa, sb, [2.0], [C])[0, 0]
    assert v == pytest.approx(nuclear_ss(ALPHA, A, BETA, B, C, 2.0), rel=1e-12)


@pytest.mark.integral
@pytest.mark.quick
def test_p_integrals_from_s_derivatives():
    # 归一化 p_k = α^{-1/2} ∂/∂A_k 归一化 s
    sa, sb = p_shell(ALPHA, A), s_shell(BETA, B)
    S = overlap_block(sa, sb)
    T = kinetic_block(sa, sb)
    V = nuclear_block(sa, sb, [1.5], [C])
    scale = 1.0 / np.sqrt(ALPHA)
    for c, lmn in enumerate(sa.components):
        k = lmn.index(1)
        s_fd = scale * d_dA(lambda X: overlap_ss(ALPHA, X, BETA, B), k)
        t_fd = scale * d_dA(lambda X: kinetic_ss(ALPHA, X, BETA, B), k)
        v_fd = scale * d_dA(lambda X: nuclear_ss(ALPHA, X, BETA, B, C, 1.5), k)
        assert S[c, 0] == pytest.approx(s_fd, abs=1e-8)
        assert T[c, 0] == pytest.approx(t_fd, abs=1e-8)
        assert V[c, 0] == pytest.approx(v_fd, abs=1e-8)


@pytest.mark.integral
@pytest.mark.quick
def test_block_transpose_symmetry():
    sa = Shell(l=2, center=A, exponents=[0.9, 0.3], coefficients=[0.5, 0.6])
    sb = Shell(l=1, center=B, exponents=[1.4], coefficients=[1.0])
    assert np.allclose(overlap_block(sa, sb), overlap_block(sb, sa).T, atol=1e-12)
    assert np.allclose(kinetic_block(sa, sb), kinetic_block(sb, sa).T, atol=1e-12)
    vab = nuclear_block(sa, sb, [1.0, 3.0], [C, A])
    vba = nuclear_block(sb, sa, [1.0, 3.0], [C, A])
    assert np.allclose(vab, vba.T, atol=1e-12)


@pytest.mark.integral
@pytest.mark.quick
def test_h2_sto3g_reference_values(h2, h2_basis):
    S = overlap_matrix(h2_basis)
    T = kinetic_matrix(h2_basis)
    V = nuclear_matrix(h2_basis, h2)
    H = core_hamiltonian(h2_basis, h2)
    assert S[0, 1] == pytest.approx(0.6593, abs=1e-4)
    assert T[0, 0] == pytest.approx(0.7600, abs=1e-4)
    assert T[0, 1] == pytest.approx(0.2365, abs=1e-4)
    assert V[0, 0] == pytest.approx(-1.8804, abs=1e-4)
    assert V[0, 1] == pytest.approx(-1.1948, abs=1e-4)
    assert H[0, 0] == pytest.approx(-1.1204, abs=1e-4)
    assert H[0, 1] == pytest.approx(-0.9584, abs=1e-4)
    for M in (S, T, V, H):
        assert np.allclose(M, M.T, atol=1e-12)


@pytest.mark.integral
def test_overlap_positive_definite(lih):
    from molscf.basis import build_basis

    S = overlap_matrix(build_basis(lih))
    assert np.all(np.linalg.eigvalsh(S) > 0)
    assert np.allclose(np.diag(S), 1.0, atol=1e-10)
