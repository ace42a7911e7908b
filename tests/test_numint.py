import numpy as np
import pytest

from molscf.errors import UnsupportedFunctionalError
from molscf.grid import GridConfig, build_molecular_grid
from molscf.methods import HF, LDA, Hybrid
from molscf.xc import ExchangeCorrelationEngine, NativeLDABackend

GRID = GridConfig(n_radial=60, n_theta=16, n_phi=32)


@pytest.fixture
def h2_grid(h2):
    return build_molecular_grid(h2, GRID)


@pytest.fixture
def lda_engine(h2_basis, h2_grid):
    return ExchangeCorrelationEngine(h2_basis, h2_grid, LDA())


@pytest.mark.xc
def test_grid_electron_count(lda_engine, h2_density):
    res = lda_engine.restricted(h2_density)
    assert res.n_electrons == pytest.approx(2.0, abs=1e-5)
    assert res.exc < 0
    assert np.allclose(res.matrix, res.matrix.T, atol=1e-14)
    assert res.int_rho_vxc == pytest.approx(np.sum(h2_density * res.matrix), rel=1e-12)


@pytest.mark.xc
def test_unrestricted_singlet_matches_restricted(lda_engine, h2_density):
    r = lda_engine.restricted(h2_density)
    u = lda_engine.unrestricted(0.5 * h2_density, 0.5 * h2_density)
    assert u.matrix.shape == (2,) + h2_density.shape
    assert np.allclose(u.matrix[0], r.matrix, atol=1e-10)
    assert np.allclose(u.matrix[1], r.matrix, atol=1e-10)
    assert u.exc == pytest.approx(r.exc, rel=1e-10)
    assert u.int_rho_vxc == pytest.approx(r.int_rho_vxc, rel=1e-10)


@pytest.mark.xc
def test_matrix_is_energy_derivative(lda_engine, h2_density):
    rng = np.random.default_rng(9)
    delta = rng.normal(size=h2_density.shape)
    delta = 0.5 * (delta + delta.T)
    h = 1e-4
    ep = lda_engine.restricted(h2_density + h * delta).exc
    em = lda_engine.restricted(h2_density - h * delta).exc
    V = lda_engine.restricted(h2_density).matrix
    assert (ep - em) / (2 * h) == pytest.approx(np.sum(V * delta), rel=1e-6)


@pytest.mark.xc
def test_spin_matrices_are_energy_derivatives(lda_engine, h2_density):
    Pa = 0.7 * h2_density
    Pb = 0.3 * h2_density
    rng = np.random.default_rng(10)
    delta = rng.normal(size=Pa.shape)
    delta = 0.5 * (delta + delta.T)
    h = 1e-4
    V = lda_engine.unrestricted(Pa, Pb).matrix
    fd_a = (lda_engine.unrestricted(Pa + h * delta, Pb).exc - lda_engine.unrestricted(Pa - h * delta, Pb).exc) / (2 * h)
    fd_b = (lda_engine.unrestricted(Pa, Pb + h * delta).exc - lda_engine.unrestricted(Pa, Pb - h * delta).exc) / (2 * h)
    assert fd_a == pytest.approx(np.sum(V[0] * delta), rel=1e-6)
    assert fd_b == pytest.approx(np.sum(V[1] * delta), rel=1e-6)


@pytest.mark.xc
def test_hybrid_scales_dft_part(h2_basis, h2_grid, h2_density):
    pure = ExchangeCorrelationEngine(h2_basis, h2_grid, LDA()).restricted(h2_density)
    hyb = ExchangeCorrelationEngine(h2_basis, h2_grid, Hybrid(LDA(), 0.25)).restricted(h2_density)
    assert hyb.exc == pytest.approx(0.75 * pure.exc, rel=1e-12)
    assert np.allclose(hyb.matrix, 0.75 * pure.matrix, atol=1e-14)
    assert hyb.n_electrons == pytest.approx(pure.n_electrons, rel=1e-14)


@pytest.mark.xc
def test_workers_match_serial_and_release_handles(h2_basis, h2_grid, h2_density):
    backend = NativeLDABackend()
    serial = ExchangeCorrelationEngine(h2_basis, h2_grid, LDA(), backend=backend).restricted(h2_density)
    threaded = ExchangeCorrelationEngine(h2_basis, h2_grid, LDA(), backend=backend, n_workers=4).restricted(h2_density)
    assert backend.open_handles == 0
    assert threaded.exc == pytest.approx(serial.exc, rel=1e-12)
    assert np.allclose(threaded.matrix, serial.matrix, atol=1e-13)


@pytest.mark.xc
def test_density_floor_skips_points(h2_basis, h2_grid, h2_density):
    loose = ExchangeCorrelationEngine(h2_basis, h2_grid, LDA(), rho_floor=1e-3).restricted(h2_density)
    tight = ExchangeCorrelationEngine(h2_basis, h2_grid, LDA()).restricted(h2_density)
    assert loose.n_electrons < tight.n_electrons
    assert loose.exc == pytest.approx(tight.exc, rel=1e-2)


@pytest.mark.xc
@pytest.mark.quick
def test_engine_rejects_hf_and_incompatible_backend(h2_basis, h2_grid):
    from molscf.methods import GGA

    with pytest.raises(UnsupportedFunctionalError):
        ExchangeCorrelationEngine(h2_basis, h2_grid, HF())
    with pytest.raises(UnsupportedFunctionalError):
        ExchangeCorrelationEngine(h2_basis, h2_grid, GGA(), backend=NativeLDABackend())
