import json

import numpy as np
import pytest

from molscf import run_rhf, run_uhf
from molscf.io import export_energies_json, export_matrices_npz, export_orbitals_csv
from molscf.molecule import Molecule


@pytest.fixture(scope="module")
def rhf_result():
    mol = Molecule.from_atoms([("H", (0.0, 0.0, 0.0)), ("H", (0.0, 0.0, 1.4))])
    return run_rhf(mol)


def test_energies_json(tmp_path, rhf_result):
    out = tmp_path / "nested" / "energies.json"
    export_energies_json(out, rhf_result)
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["converged"] is True
    assert data["spin"] == "restricted"
    assert data["n_alpha"] == data["n_beta"] == 1
    assert data["energies"]["total"] == pytest.approx(rhf_result.e_total, abs=1e-12)
    assert set(data["energies"]) >= {"one_electron", "coulomb", "exchange", "xc", "nuclear", "total"}


def test_orbitals_csv_restricted(tmp_path, rhf_result):
    out = tmp_path / "orbitals.csv"
    export_orbitals_csv(out, rhf_result)
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "spin,index,occ,eps(Ha)"
    assert len(lines) == 3
    spin, idx, occ, eps = lines[1].split(",")
    assert (spin, idx) == ("both", "0")
    assert float(occ) == 2.0
    assert float(eps) == pytest.approx(rhf_result.mo_energies[0], abs=1e-10)
    assert float(lines[2].split(",")[2]) == 0.0


def test_orbitals_csv_unrestricted(tmp_path):
    mol = Molecule.from_atoms([("H", (0.0, 0.0, 0.0))], multiplicity=2)
    res = run_uhf(mol)
    out = tmp_path / "orbitals.csv"
    export_orbitals_csv(out, res)
    rows = [line.split(",") for line in out.read_text(encoding="utf-8").splitlines()[1:]]
    assert [r[0] for r in rows] == ["alpha", "beta"]
    assert float(rows[0][2]) == 1.0
    assert float(rows[1][2]) == 0.0


def test_matrices_npz(tmp_path, rhf_result):
    out = tmp_path / "mats.npz"
    export_matrices_npz(out, rhf_result)
    with np.load(out) as data:
        assert set(data.files) == {"overlap", "hcore", "fock", "density", "mo_coefficients", "mo_energies"}
        assert np.allclose(data["density"], rhf_result.density)
        assert data["overlap"].shape == (2, 2)
