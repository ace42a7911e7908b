import numpy as np
import pytest

from molscf import (
    ElectronCountError,
    LinearDependenceError,
    SCFConfig,
    SCFConvergenceError,
    SCFState,
    UnresolvedBasisError,
    run_rhf,
    run_rks,
    run_scf,
    run_uhf,
    run_uks,
)
from molscf.basis import BasisSet, STO3G
from molscf.density import electron_count
from molscf.grid import GridConfig
from molscf.jk import build_jk
from molscf.methods import LDA, Hybrid
from molscf.molecule import Molecule
from molscf.utils import max_asymmetry

GRID = GridConfig(n_radial=50, n_theta=14, n_phi=28)


@pytest.fixture
def h_atom():
    return Molecule.from_atoms([("H", (0.0, 0.0, 0.0))], multiplicity=2)


@pytest.fixture
def heh_cation():
    return Molecule.from_atoms([("He", (0.0, 0.0, 0.0)), ("H", (0.0, 0.0, 1.4632))], charge=1)


@pytest.mark.scf
def test_h2_rhf_energy(h2):
    res = run_rhf(h2)
    assert res.converged
    assert res.state is SCFState.CONVERGED
    assert res.e_total == pytest.approx(-1.1167, abs=1e-4)
    assert res.e_nuclear == pytest.approx(1.0 / 1.4, rel=1e-14)
    assert res.e_total == pytest.approx(res.e_electronic + res.e_nuclear, abs=1e-14)
    assert res.energies["xc"] == 0.0
    assert electron_count(res.density, res.overlap) == pytest.approx(2.0, abs=1e-10)
    assert max_asymmetry(res.density) < 1e-12
    assert max_asymmetry(res.fock) < 1e-12
    assert res.mo_energies[0] == pytest.approx(-0.578, abs=1e-3)


@pytest.mark.scf
def test_rerun_from_converged_density_takes_one_iteration(h2):
    first = run_rhf(h2)
    again = run_rhf(h2, guess=first.density)
    assert again.iterations == 1
    assert again.e_total == pytest.approx(first.e_total, abs=1e-10)


@pytest.mark.scf
def test_hydrogen_atom_uhf(h_atom):
    res = run_uhf(h_atom)
    assert res.e_total == pytest.approx(-0.46658, abs=1e-5)
    assert res.occupation.n_alpha == 1
    assert res.occupation.n_beta == 0
    # 单电子：Coulomb 与交换自相互作用严格抵消
    assert res.energies["coulomb"] + res.energies["exchange"] == pytest.approx(0.0, abs=1e-12)
    assert res.density.shape == (2, 1, 1)
    assert np.allclose(res.density[1], 0.0)


@pytest.mark.scf
def test_uhf_singlet_equals_rhf(h2):
    r = run_rhf(h2)
    u = run_uhf(h2)
    assert u.e_total == pytest.approx(r.e_total, abs=1e-8)
    assert np.allclose(u.density[0] + u.density[1], r.density, atol=1e-8)


@pytest.mark.scf
def test_heh_cation_uses_diis(heh_cation):
    res = run_rhf(heh_cation)
    assert res.converged
    assert res.iterations > 1
    assert any(h["diis"] for h in res.history)
    plain = run_rhf(heh_cation, diis=False)
    assert plain.e_total == pytest.approx(res.e_total, abs=1e-7)


@pytest.mark.scf
@pytest.mark.quick
def test_electron_count_errors(h2, h_atom):
    with pytest.raises(ElectronCountError):
        run_rhf(h_atom)
    odd = Molecule.from_atoms([("H", (0, 0, 0)), ("H", (0, 0, 1.4))], multiplicity=2)
    with pytest.raises(ElectronCountError):
        run_uhf(odd)


@pytest.mark.scf
@pytest.mark.quick
def test_convergence_failure_carries_state(h2):
    bad_guess = np.diag([2.0, 0.0])
    with pytest.raises(SCFConvergenceError) as exc:
        run_rhf(h2, guess=bad_guess, max_iter=1)
    err = exc.value
    assert err.iterations == 1
    assert err.density.shape == (2, 2)
    assert np.isfinite(err.energy)
    assert len(err.history) == 1
    assert isinstance(err, RuntimeError)


@pytest.mark.scf
@pytest.mark.quick
def test_linear_dependence_is_setup_error(h2):
    h = STO3G.for_element("H")[0]
    dup = BasisSet.from_dict(
        "dup",
        {"H": [(0, list(zip(h.exponents, h.coefficients))), (0, list(zip(h.exponents, h.coefficients)))]},
    )
    with pytest.raises(LinearDependenceError):
        run_rhf(h2, basis=dup)


@pytest.mark.scf
@pytest.mark.quick
def test_unknown_basis_name(h2):
    with pytest.raises(UnresolvedBasisError):
        run_rhf(h2, basis="cc-pvqz")


@pytest.mark.scf
@pytest.mark.quick
def test_bad_spin_mode(h2):
    from molscf.errors import SetupError

    with pytest.raises(SetupError):
        run_scf(h2, SCFConfig(spin="ROHF"))


@pytest.mark.scf
def test_verbose_progress(h2, capsys):
    res = run_scf(h2, SCFConfig(), verbose=True)
    out = capsys.readouterr().out
    assert "[RHF] iter=1" in out
    assert set(res.history[0]) == {"iteration", "energy", "dE", "dP", "diis"}


@pytest.mark.scf
def test_workers_match_serial(heh_cation):
    a = run_rhf(heh_cation)
    b = run_rhf(heh_cation, n_workers=2)
    assert b.e_total == pytest.approx(a.e_total, abs=1e-10)


@pytest.mark.scf
@pytest.mark.xc
def test_lda_rks_energy_decomposition(h2):
    res = run_rks(h2, "LDA", grid=GRID)
    assert res.converged
    P = res.density
    J, _ = build_jk(res.basis, P)
    # E = tr(PH) + ½ tr(P J[P]) + E_xc + E_nuc
    ref = np.sum(P * res.hcore) + 0.5 * np.sum(P * J) + res.energies["xc"] + res.e_nuclear
    assert res.e_total == pytest.approx(ref, abs=1e-10)
    assert res.energies["exchange"] == 0.0
    assert res.energies["xc"] < 0
    assert electron_count(P, res.overlap) == pytest.approx(2.0, abs=1e-10)


@pytest.mark.scf
@pytest.mark.xc
def test_uks_singlet_equals_rks(h2):
    r = run_rks(h2, LDA(), grid=GRID)
    u = run_uks(h2, LDA(), grid=GRID)
    assert u.e_total == pytest.approx(r.e_total, abs=1e-8)


@pytest.mark.scf
@pytest.mark.xc
def test_hybrid_energy_decomposition(h2):
    res = run_rks(h2, Hybrid(LDA(), 0.5), grid=GRID)
    P = res.density
    J, K = build_jk(res.basis, 0.5 * P)
    ref = (
        np.sum(P * res.hcore)
        + np.sum(P * J)
        - 0.5 * 0.5 * np.sum(P * K)
        + res.energies["xc"]
        + res.e_nuclear
    )
    assert res.e_total == pytest.approx(ref, abs=1e-10)
    assert res.energies["exchange"] < 0


@pytest.mark.scf
@pytest.mark.xc
def test_uks_hydrogen_atom(h_atom):
    res = run_uks(h_atom, "SVWN", grid=GRID)
    assert res.converged
    assert -0.6 < res.e_total < -0.3
    assert res.energies["xc"] < 0
    assert res.mo_energies.shape == (2, 1)


@pytest.mark.scf
def test_wrapper_progress_interval(heh_cation, capsys):
    res = run_rhf(heh_cation, verbose=True, progress_every=3)
    lines = [line for line in capsys.readouterr().out.splitlines() if " iter=" in line]
    expected = [1] + [it for it in range(2, res.iterations + 1) if it % 3 == 0]
    assert [int(line.split("iter=")[1].split()[0]) for line in lines] == expected
