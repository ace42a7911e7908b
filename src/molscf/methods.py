r"""方法变体
==========

封闭的标签集合：

- :class:`HF` —— Hartree–Fock；
- :class:`LDA`、:class:`GGA`、:class:`MetaGGA` —— 纯泛函，携带泛函代码（Libxc 命名）；
- :class:`Hybrid` —— 包装一个纯泛函基底并给出 HF 交换比例 :math:`a`：
  DFT 部分按 :math:`1-a` 缩放，:math:`a` 乘在交换矩阵 :math:`K` 上。

所有辅助函数对每个变体显式分支，遇到未知对象抛出 :class:`~molscf.errors.UnsupportedFunctionalError`。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .errors import UnsupportedFunctionalError

__all__ = [
    "HF",
    "LDA",
    "GGA",
    "MetaGGA",
    "Hybrid",
    "Method",
    "HYBRID_PRESETS",
    "exchange_fraction",
    "xc_family",
    "xc_code",
    "is_dft",
    "parse_method",
]


@dataclass(frozen=True)
class HF:
    pass


@dataclass(frozen=True)
class LDA:
    xc: str = "LDA_X,LDA_C_VWN"


@dataclass(frozen=True)
class GGA:
    xc: str = "GGA_X_PBE,GGA_C_PBE"


@dataclass(frozen=True)
class MetaGGA:
    xc: str = "MGGA_X_SCAN,MGGA_C_SCAN"


@dataclass(frozen=True)
class Hybrid:
    r"""杂化泛函：纯泛函基底 + HF 交换比例 :math:`0 < a < 1`。"""

    base: Union[LDA, GGA, MetaGGA]
    hf_fraction: float

    def __post_init__(self):
        if not isinstance(self.base, (LDA, GGA, MetaGGA)):
            raise UnsupportedFunctionalError(
                f"杂化泛函的基底必须是 LDA/GGA/MetaGGA，当前为 {type(self.base).__name__}"
            )
        if not 0.0 < self.hf_fraction < 1.0:
            raise UnsupportedFunctionalError(f"HF 交换比例必须在 (0, 1) 内，当前值: {self.hf_fraction}")


Method = Union[HF, LDA, GGA, MetaGGA, Hybrid]

#: 杂化预设：名称 -> (基底, HF 交换比例)
HYBRID_PRESETS = {
    "PBE0": (GGA("GGA_X_PBE,GGA_C_PBE"), 0.25),
    "B3LYP": (GGA("GGA_X_B88,GGA_C_LYP"), 0.20),
}


def exchange_fraction(method: Method) -> float:
    """Fock 中交换矩阵 :math:`K` 的系数。"""
    if isinstance(method, HF):
        return 1.0
    if isinstance(method, (LDA, GGA, MetaGGA)):
        return 0.0
    if isinstance(method, Hybrid):
        return float(method.hf_fraction)
    raise UnsupportedFunctionalError(f"未知方法: {method!r}")


def xc_family(method: Method) -> str | None:
    """``"LDA"``、``"GGA"``、``"MGGA"``；HF 返回 ``None``。"""
    if isinstance(method, HF):
        return None
    if isinstance(method, LDA):
        return "LDA"
    if isinstance(method, GGA):
        return "GGA"
    if isinstance(method, MetaGGA):
        return "MGGA"
    if isinstance(method, Hybrid):
        return xc_family(method.base)
    raise UnsupportedFunctionalError(f"未知方法: {method!r}")


def xc_code(method: Method) -> str | None:
    if isinstance(method, HF):
        return None
    if isinstance(method, (LDA, GGA, MetaGGA)):
        return method.xc
    if isinstance(method, Hybrid):
        return method.base.xc
    raise UnsupportedFunctionalError(f"未知方法: {method!r}")


def is_dft(method: Method) -> bool:
    return xc_family(method) is not None


def parse_method(name: str | Method) -> Method:
    """名称转方法变体；已是变体则原样返回。

    支持 ``HF``、``LDA``/``SVWN``、``PBE``、``SCAN``、``PBE0``、``B3LYP``。
    """
    if isinstance(name, (HF, LDA, GGA, MetaGGA, Hybrid)):
        return name
    if not isinstance(name, str):
        raise UnsupportedFunctionalError(f"无法识别的方法: {name!r}")
    key = name.strip().upper()
    if key == "HF":
        return HF()
    if key in ("LDA", "SVWN", "SVWN5"):
        return LDA()
    if key == "PBE":
        return GGA()
    if key == "SCAN":
        return MetaGGA()
    if key in HYBRID_PRESETS:
        base, frac = HYBRID_PRESETS[key]
        return Hybrid(base, frac)
    raise UnsupportedFunctionalError(f"无法识别的方法: {name!r}")
