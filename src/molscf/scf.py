r"""SCF 驱动
==========

Roothaan–Hall 自洽场循环，覆盖 RHF/UHF/RKS/UKS：

.. math::

    \mathbf F[\mathbf P]\,\mathbf C = \mathbf S\mathbf C\boldsymbol\varepsilon

状态机 ``Init → Iterate → Converged | Failed``：

1. **Init**：基组、:math:`S, T, V, H`、正交化矩阵、XC 引擎（仅 DFT）、初猜密度
   （核哈密顿量，或调用者给出的密度）及其 Fock 与能量；
2. **Iterate**：DIIS 推入 :math:`(F, FPS-SPF)` 并外推（失败时退回原 Fock）、
   对角化、新密度、新 Fock 与能量，计算 :math:`\Delta E` 与 :math:`\Delta P`；
3. **Converged**：:math:`|\Delta E| <` ``conv_tol`` 且 :math:`\Delta P <` ``density_tol``；
4. **Failed**：``max_iter`` 用尽，抛出 :class:`~molscf.errors.SCFConvergenceError`。

能量
----
.. math::

    E_{\mathrm{elec}} = \tfrac12\sum_\sigma \mathrm{tr}\,\mathbf P_\sigma(\mathbf H + \mathbf F_\sigma)
        + \Big(E_{xc} - \tfrac12\sum_\sigma \mathrm{tr}\,\mathbf P_\sigma \mathbf V^{xc}_\sigma\Big)

括号内的 XC 修正每次能量计算只施加一次，HF 时为零。
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .basis.library import BasisSet, build_basis
from .basis.shell import MolecularBasis
from .density import closed_shell_density, rms_density_change, spin_density
from .diis import DIIS, commutator_error
from .eigen import MOSystem, orthogonalizer, solve_roothaan
from .errors import SCFConvergenceError, SetupError
from .grid import GridConfig, build_molecular_grid
from .integrals.one_electron import kinetic_matrix, nuclear_matrix, overlap_matrix
from .integrals.schwarz import DEFAULT_CUTOFF
from .jk import JKBuilder
from .methods import HF, Method, exchange_fraction, is_dft, parse_method
from .molecule import Molecule
from .occupations import SpinOccupation, electron_counts
from .utils import symmetrize
from .xc.backend import FunctionalBackend
from .xc.numint import ExchangeCorrelationEngine, XCResult

__all__ = [
    "SCFState",
    "SCFConfig",
    "SCFResult",
    "run_scf",
    "run_rhf",
    "run_uhf",
    "run_rks",
    "run_uks",
]


class SCFState(Enum):
    INIT = "init"
    ITERATE = "iterate"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass
class SCFConfig:
    r"""SCF 配置。

    Attributes
    ----------
    method : Method or str
        方法变体或名称（见 :func:`~molscf.methods.parse_method`）。
    spin : str
        ``"restricted"`` 或 ``"unrestricted"``。
    basis : str or BasisSet
        基组名称或模板。
    max_iter : int
        最大迭代数。
    conv_tol : float
        能量收敛阈值（Hartree）。
    density_tol : float or None
        密度 RMS 变化阈值，缺省与 ``conv_tol`` 相同。
    diis : bool
        是否启用 DIIS 加速。
    diis_space : int
        DIIS 历史容量。
    schwarz_cutoff : float
        Schwarz 筛选阈值。
    rho_floor : float
        XC 积分的密度下限。
    grid : GridConfig
        DFT 网格参数。
    n_workers : int
        J/K 与 XC 积分的线程数。
    lindep_tol : float
        重叠矩阵最小本征值阈值。
    backend : FunctionalBackend or None
        泛函后端，缺省按泛函族自动选择。
    """

    method: Method | str = field(default_factory=HF)
    spin: str = "restricted"
    basis: str | BasisSet = "sto-3g"
    max_iter: int = 100
    conv_tol: float = 1e-8
    density_tol: float | None = None
    diis: bool = True
    diis_space: int = 6
    schwarz_cutoff: float = DEFAULT_CUTOFF
    rho_floor: float = 1e-12
    grid: GridConfig = field(default_factory=GridConfig)
    n_workers: int = 1
    lindep_tol: float = 1e-10
    backend: FunctionalBackend | None = None


@dataclass
class SCFResult:
    r"""SCF 结果容器。

    Attributes
    ----------
    converged : bool
        是否收敛。
    iterations : int
        迭代次数。
    e_total : float
        总能量 :math:`E_{\mathrm{elec}} + E_{\mathrm{nuc}}`。
    e_electronic : float
        电子能量。
    e_nuclear : float
        核排斥能。
    energies : dict[str, float]
        分能：``one_electron``、``coulomb``、``exchange``、``xc``、``nuclear``、``electronic``、``total``。
    density : numpy.ndarray
        限制性为总密度 ``(n, n)``；非限制性为 ``(2, n, n)``。
    orbitals : list[MOSystem]
        限制性一组，非限制性 ``[alpha, beta]``。
    occupation : SpinOccupation
        各自旋电子数。
    fock : numpy.ndarray
        最终密度对应的 Fock（非限制性 ``(2, n, n)``）。
    overlap, hcore : numpy.ndarray
        :math:`S` 与 :math:`H`。
    basis : MolecularBasis
        分子基组。
    history : list[dict]
        每步迭代记录。
    """

    converged: bool
    iterations: int
    e_total: float
    e_electronic: float
    e_nuclear: float
    energies: dict
    density: np.ndarray
    orbitals: list
    occupation: SpinOccupation
    fock: np.ndarray
    overlap: np.ndarray
    hcore: np.ndarray
    basis: MolecularBasis
    history: list
    method: Method
    spin: str
    state: SCFState = SCFState.CONVERGED

    @property
    def mo_energies(self) -> np.ndarray:
        if len(self.orbitals) == 1:
            return self.orbitals[0].energies
        return np.array([mo.energies for mo in self.orbitals])

    @property
    def mo_coefficients(self) -> np.ndarray:
        if len(self.orbitals) == 1:
            return self.orbitals[0].coefficients
        return np.array([mo.coefficients for mo in self.orbitals])


class _SCFSystem:
    """一次 SCF 计算中不随迭代改变的量。"""

    def __init__(self, molecule: Molecule, cfg: SCFConfig):
        if cfg.spin not in ("restricted", "unrestricted"):
            raise SetupError(f"spin 必须为 'restricted' 或 'unrestricted'，当前值: {cfg.spin!r}")
        self.method = parse_method(cfg.method)
        self.restricted = cfg.spin == "restricted"
        self.basis = build_basis(molecule, cfg.basis)
        self.occupation = electron_counts(molecule, self.restricted, nao=self.basis.nao)

        self.S = overlap_matrix(self.basis)
        T = kinetic_matrix(self.basis)
        V = nuclear_matrix(self.basis, molecule)
        self.H = symmetrize(T + V)
        self.X = orthogonalizer(self.S, cfg.lindep_tol)
        self.e_nuclear = molecule.nuclear_repulsion()

        self.a = exchange_fraction(self.method)
        self.jk = JKBuilder(self.basis, cutoff=cfg.schwarz_cutoff, n_workers=cfg.n_workers)
        self.xc = None
        if is_dft(self.method):
            grid = build_molecular_grid(molecule, cfg.grid)
            self.xc = ExchangeCorrelationEngine(
                self.basis,
                grid,
                self.method,
                backend=cfg.backend,
                rho_floor=cfg.rho_floor,
                n_workers=cfg.n_workers,
            )
        self.last_xc: XCResult | None = None

    @property
    def tag(self) -> str:
        if self.xc is None:
            return "RHF" if self.restricted else "UHF"
        return "RKS" if self.restricted else "UKS"

    def solve(self, F: np.ndarray) -> list[MOSystem]:
        occ = self.occupation
        if self.restricted:
            eps, C = solve_roothaan(F, self.X)
            return [MOSystem(C, eps, occ.n_occ)]
        out = []
        for Fs, n in zip(F, (occ.n_alpha, occ.n_beta)):
            eps, C = solve_roothaan(Fs, self.X)
            out.append(MOSystem(C, eps, n))
        return out

    def density(self, mos: list[MOSystem]) -> np.ndarray:
        if self.restricted:
            mo = mos[0]
            return closed_shell_density(mo.coefficients, mo.n_occ)
        return np.array([spin_density(mo.coefficients, mo.n_occ) for mo in mos])

    def initial_density(self, guess: np.ndarray | None) -> np.ndarray:
        n = self.basis.nao
        if guess is None:
            # 核哈密顿量初猜
            F = self.H if self.restricted else np.array([self.H, self.H])
            return self.density(self.solve(F))
        P = np.asarray(guess, dtype=float)
        if self.restricted:
            if P.shape != (n, n):
                raise ValueError(f"限制性初猜密度形状应为 {(n, n)}，当前: {P.shape}")
            return symmetrize(P)
        if P.shape == (n, n):
            return np.array([0.5 * P, 0.5 * P])
        if P.shape != (2, n, n):
            raise ValueError(f"非限制性初猜密度形状应为 {(2, n, n)} 或 {(n, n)}，当前: {P.shape}")
        return symmetrize(P)

    def fock_and_energy(self, P: np.ndarray) -> tuple[np.ndarray, dict]:
        H = self.H
        a = self.a
        if self.restricted:
            J, K = self.jk.build(0.5 * P)
            F = H + 2.0 * J - a * K
            e_one = float(np.sum(P * H))
            e_coul = float(np.sum(P * J))
            e_exch = -0.5 * a * float(np.sum(P * K))
        else:
            J, K = self.jk.build(P)
            Jt = J[0] + J[1]
            F = np.array([H + Jt - a * K[0], H + Jt - a * K[1]])
            Pt = P[0] + P[1]
            e_one = float(np.sum(Pt * H))
            e_coul = 0.5 * float(np.sum(Pt * Jt))
            e_exch = -0.5 * a * float(np.sum(P * K))

        e_xc = 0.0
        correction = 0.0
        if self.xc is not None:
            res = self.xc.restricted(P) if self.restricted else self.xc.unrestricted(P[0], P[1])
            self.last_xc = res
            F = F + res.matrix
            e_xc = res.exc
            correction = res.exc - 0.5 * res.int_rho_vxc
        F = symmetrize(F)

        if self.restricted:
            e_band = 0.5 * float(np.sum(P * (H + F)))
        else:
            e_band = 0.5 * float(sum(np.sum(Ps * (H + Fs)) for Ps, Fs in zip(P, F)))

        e_elec = e_band + correction
        energies = {
            "one_electron": e_one,
            "coulomb": e_coul,
            "exchange": e_exch,
            "xc": e_xc,
            "nuclear": self.e_nuclear,
            "electronic": e_elec,
            "total": e_elec + self.e_nuclear,
        }
        return F, energies

    def error(self, F: np.ndarray, P: np.ndarray) -> np.ndarray:
        if self.restricted:
            return commutator_error(F, P, self.S)
        return np.array([commutator_error(Fs, Ps, self.S) for Fs, Ps in zip(F, P)])


def run_scf(
    molecule: Molecule,
    cfg: SCFConfig | None = None,
    guess: np.ndarray | None = None,
    verbose: bool = False,
    progress_every: int = 1,
) -> SCFResult:
    r"""运行 SCF 计算。

    Parameters
    ----------
    molecule : Molecule
        分子（坐标为 Bohr）。
    cfg : SCFConfig, optional
        配置，缺省为 RHF/STO-3G。
    guess : numpy.ndarray, optional
        初猜密度：限制性为总密度 ``(n, n)``；非限制性为 ``(2, n, n)``
        （给出 ``(n, n)`` 时两自旋各取一半）。缺省用核哈密顿量初猜。
    verbose : bool
        是否打印迭代进度。
    progress_every : int
        打印间隔。

    Returns
    -------
    SCFResult
        收敛结果。

    Raises
    ------
    SetupError
        基组、电子数、线性相关或泛函设置错误（迭代开始前）。
    SCFConvergenceError
        ``max_iter`` 次迭代内未收敛。

    Examples
    --------
    >>> mol = Molecule.from_atoms([("H", (0, 0, 0)), ("H", (0, 0, 1.4))])
    >>> res = run_scf(mol)
    >>> round(res.e_total, 4)
    -1.1167
    """
    cfg = cfg or SCFConfig()
    density_tol = cfg.conv_tol if cfg.density_tol is None else cfg.density_tol

    # Init
    system = _SCFSystem(molecule, cfg)
    P = system.initial_density(guess)
    F, energies = system.fock_and_energy(P)
    E = energies["total"]
    diis = DIIS(capacity=cfg.diis_space) if cfg.diis else None
    history: list[dict] = []
    tag = system.tag

    # Iterate
    for it in range(1, cfg.max_iter + 1):
        F_solve = F
        used_diis = False
        if diis is not None:
            diis.push(F, system.error(F, P))
            extrapolated = diis.extrapolate()
            if extrapolated is not None:
                F_solve = extrapolated
                used_diis = True

        mos = system.solve(F_solve)
        P_new = system.density(mos)
        F_new, energies_new = system.fock_and_energy(P_new)
        E_new = energies_new["total"]
        dE = abs(E_new - E)
        dP = rms_density_change(P_new, P)
        history.append({"iteration": it, "energy": E_new, "dE": dE, "dP": dP, "diis": used_diis})

        if verbose and (it == 1 or it % progress_every == 0):
            print(f"[{tag}] iter={it} E={E_new:.10f} dE={dE:.3e} dP={dP:.3e}")

        P, F, E, energies = P_new, F_new, E_new, energies_new
        if dE < cfg.conv_tol and dP < density_tol:
            if verbose:
                print(f"[{tag}] converged in {it} iterations, E={E:.10f}")
            _check_grid_electrons(system)
            return SCFResult(
                converged=True,
                iterations=it,
                e_total=E,
                e_electronic=energies["electronic"],
                e_nuclear=system.e_nuclear,
                energies=energies,
                density=P,
                orbitals=mos,
                occupation=system.occupation,
                fock=F,
                overlap=system.S,
                hcore=system.H,
                basis=system.basis,
                history=history,
                method=system.method,
                spin=cfg.spin,
                state=SCFState.CONVERGED,
            )

    # Failed
    raise SCFConvergenceError(E, P, cfg.max_iter, history)


def _check_grid_electrons(system: _SCFSystem, rel_tol: float = 1e-3) -> None:
    res = system.last_xc
    if res is None:
        return
    n_ref = system.occupation.n_electrons
    if abs(res.n_electrons - n_ref) > rel_tol * max(n_ref, 1):
        warnings.warn(
            f"网格积分电子数 {res.n_electrons:.6f} 与实际电子数 {n_ref} 偏差较大，建议加密网格",
            RuntimeWarning,
            stacklevel=3,
        )


def run_rhf(
    molecule: Molecule,
    basis: str | BasisSet = "sto-3g",
    guess=None,
    verbose: bool = False,
    progress_every: int = 1,
    **kwargs,
) -> SCFResult:
    """限制性 Hartree–Fock。其余关键字传给 :class:`SCFConfig`。"""
    cfg = SCFConfig(method=HF(), spin="restricted", basis=basis, **kwargs)
    return run_scf(molecule, cfg, guess=guess, verbose=verbose, progress_every=progress_every)


def run_uhf(
    molecule: Molecule,
    basis: str | BasisSet = "sto-3g",
    guess=None,
    verbose: bool = False,
    progress_every: int = 1,
    **kwargs,
) -> SCFResult:
    """非限制性 Hartree–Fock。"""
    cfg = SCFConfig(method=HF(), spin="unrestricted", basis=basis, **kwargs)
    return run_scf(molecule, cfg, guess=guess, verbose=verbose, progress_every=progress_every)


def run_rks(
    molecule: Molecule,
    method: Method | str = "LDA",
    basis: str | BasisSet = "sto-3g",
    guess=None,
    verbose: bool = False,
    progress_every: int = 1,
    **kwargs,
) -> SCFResult:
    """限制性 Kohn–Sham（含杂化泛函）。"""
    cfg = SCFConfig(method=parse_method(method), spin="restricted", basis=basis, **kwargs)
    return run_scf(molecule, cfg, guess=guess, verbose=verbose, progress_every=progress_every)


def run_uks(
    molecule: Molecule,
    method: Method | str = "LDA",
    basis: str | BasisSet = "sto-3g",
    guess=None,
    verbose: bool = False,
    progress_every: int = 1,
    **kwargs,
) -> SCFResult:
    """非限制性 Kohn–Sham。"""
    cfg = SCFConfig(method=parse_method(method), spin="unrestricted", basis=basis, **kwargs)
    return run_scf(molecule, cfg, guess=guess, verbose=verbose, progress_every=progress_every)
