import numpy as np
import pytest

pytest.importorskip("pyscf")

from pyscf import dft, gto, scf  # noqa: E402

from molscf import run_rhf, run_rks, run_uhf  # noqa: E402
from molscf.basis import build_basis  # noqa: E402
from molscf.density import electron_count  # noqa: E402
from molscf.grid import GridConfig, build_molecular_grid  # noqa: E402
from molscf.integrals import overlap_matrix  # noqa: E402
from molscf.methods import GGA, LDA, MetaGGA  # noqa: E402
from molscf.xc import DensitySample, ExchangeCorrelationEngine, LibxcBackend, NativeLDABackend  # noqa: E402

RHO = np.array([1e-4, 1e-2, 0.1, 0.5, 2.0, 10.0])
GRID = GridConfig(n_radial=60, n_theta=16, n_phi=32)


def pyscf_mol(atom, spin=0, charge=0):
    return gto.M(atom=atom, unit="Bohr", basis="sto-3g", cart=True, spin=spin, charge=charge, verbose=0)


@pytest.mark.libxc
@pytest.mark.xc
@pytest.mark.parametrize("spin", [0, 1])
def test_native_lda_matches_libxc(spin):
    rho = RHO[None] if spin == 0 else np.array([0.65 * RHO, 0.35 * RHO])
    sample = DensitySample(rho=rho)
    native = NativeLDABackend()
    lib = LibxcBackend()
    with native.acquire("LDA", spin=spin) as h1, lib.acquire("LDA", spin=spin) as h2:
        a = h1.compute(sample)
        b = h2.compute(sample)
    assert np.allclose(a.exc, b.exc, rtol=1e-6)
    assert np.allclose(a.vrho, b.vrho, rtol=1e-6)
    assert lib.open_handles == 0


@pytest.mark.libxc
@pytest.mark.scf
def test_rhf_matches_pyscf(lih):
    ours = run_rhf(lih)
    mol = pyscf_mol("Li 0 0 0; H 0 0 3.015")
    ref = scf.RHF(mol).run(conv_tol=1e-10)
    assert ours.e_total == pytest.approx(ref.e_tot, abs=1e-7)


@pytest.mark.libxc
@pytest.mark.scf
def test_uhf_matches_pyscf():
    from molscf.molecule import Molecule

    mol_ours = Molecule.from_atoms([("Li", (0.0, 0.0, 0.0))], multiplicity=2)
    ours = run_uhf(mol_ours)
    ref = scf.UHF(pyscf_mol("Li 0 0 0", spin=1)).run(conv_tol=1e-10)
    assert ours.e_total == pytest.approx(ref.e_tot, abs=1e-6)


@pytest.mark.libxc
@pytest.mark.scf
def test_pbe_h2_matches_pyscf(h2):
    ours = run_rks(h2, GGA(), grid=GRID)
    mf = dft.RKS(pyscf_mol("H 0 0 0; H 0 0 1.4"))
    mf.xc = "PBE"
    mf.grids.level = 6
    ref = mf.run(conv_tol=1e-10)
    assert ours.converged
    assert ours.e_total == pytest.approx(ref.e_tot, abs=1e-4)


@pytest.mark.libxc
@pytest.mark.scf
def test_lda_h2_matches_pyscf(h2):
    ours = run_rks(h2, LDA(), grid=GRID)
    mf = dft.RKS(pyscf_mol("H 0 0 0; H 0 0 1.4"))
    mf.xc = "LDA,VWN"
    mf.grids.level = 6
    ref = mf.run(conv_tol=1e-10)
    assert ours.e_total == pytest.approx(ref.e_tot, abs=1e-4)


@pytest.fixture
def lih_full_rank(lih):
    """LiH/STO-3G 上的满秩正定密度，保证 τ 严格大于 von Weizsäcker 下限。"""
    basis = build_basis(lih, "sto-3g")
    rng = np.random.default_rng(12)
    C = rng.normal(size=(basis.nao, 3))
    P = 0.1 * C @ C.T + 0.2 * np.eye(basis.nao)
    return basis, P


@pytest.mark.libxc
@pytest.mark.xc
@pytest.mark.parametrize(
    "method",
    [GGA(), MetaGGA("MGGA_X_TPSS,MGGA_C_TPSS"), MetaGGA()],
    ids=["pbe", "tpss", "scan"],
)
def test_gradient_functionals_matrix_is_derivative(lih, lih_full_rank, method):
    basis, P = lih_full_rank
    grid = build_molecular_grid(lih, GRID)
    engine = ExchangeCorrelationEngine(basis, grid, method)
    rng = np.random.default_rng(13)
    delta = rng.normal(size=P.shape)
    delta = 0.5 * (delta + delta.T)
    h = 1e-4
    ep = engine.restricted(P + h * delta).exc
    em = engine.restricted(P - h * delta).exc
    res = engine.restricted(P)
    assert res.n_electrons == pytest.approx(electron_count(P, overlap_matrix(basis)), rel=1e-3)
    assert (ep - em) / (2 * h) == pytest.approx(np.sum(res.matrix * delta), rel=1e-5)


@pytest.mark.libxc
@pytest.mark.scf
def test_libxc_lda_scf_matches_native(h2):
    native = run_rks(h2, LDA(), grid=GRID)
    lib = run_rks(h2, LDA(), grid=GRID, backend=LibxcBackend())
    assert lib.converged
    assert lib.e_total == pytest.approx(native.e_total, abs=1e-7)


@pytest.mark.libxc
@pytest.mark.xc
def test_gga_unrestricted_singlet_matches_restricted(h2, h2_basis, h2_density):
    grid = build_molecular_grid(h2, GRID)
    engine = ExchangeCorrelationEngine(h2_basis, grid, GGA())
    r = engine.restricted(h2_density)
    u = engine.unrestricted(0.5 * h2_density, 0.5 * h2_density)
    assert u.exc == pytest.approx(r.exc, rel=1e-8)
    assert np.allclose(u.matrix[0], r.matrix, atol=1e-8)
