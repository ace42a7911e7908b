from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from .scf import SCFResult

__all__ = [
    "export_energies_json",
    "export_orbitals_csv",
    "export_matrices_npz",
]


def export_energies_json(out_path: str | Path, result: SCFResult) -> None:
    """导出总能、分能与收敛信息为 JSON。"""
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "converged": bool(result.converged),
        "iterations": int(result.iterations),
        "spin": result.spin,
        "method": repr(result.method),
        "n_alpha": result.occupation.n_alpha,
        "n_beta": result.occupation.n_beta,
        "energies": {k: float(v) for k, v in result.energies.items()},
    }
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def export_orbitals_csv(out_path: str | Path, result: SCFResult) -> None:
    """导出轨道能级表为 CSV：列为 `spin,index,occ,eps(Ha)`。

    限制性计算的自旋列记为 ``both``，占据数为 2；非限制性分别列出 ``alpha``、``beta``。
    """
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if len(result.orbitals) == 1:
        channels = [("both", result.orbitals[0], 2.0)]
    else:
        channels = [("alpha", result.orbitals[0], 1.0), ("beta", result.orbitals[1], 1.0)]

    with p.open("w", encoding="utf-8") as f:
        f.write("spin,index,occ,eps(Ha)\n")
        for spin, mo, occ in channels:
            for i, e in enumerate(mo.energies):
                occ_val = occ if i < mo.n_occ else 0.0
                f.write(f"{spin},{i},{occ_val:.6f},{float(e):.12f}\n")


def export_matrices_npz(out_path: str | Path, result: SCFResult) -> None:
    """导出 AO 矩阵（S、H、F、P）与 MO 系数、轨道能量为 ``.npz``。"""
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        p,
        overlap=result.overlap,
        hcore=result.hcore,
        fock=result.fock,
        density=result.density,
        mo_coefficients=result.mo_coefficients,
        mo_energies=result.mo_energies,
    )
