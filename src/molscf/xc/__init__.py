"""交换-关联泛函：内置 LDA、Libxc 后端与网格数值积分。"""

from .backend import (
    DEFAULT_CODES,
    DensitySample,
    FunctionalBackend,
    FunctionalHandle,
    LibxcBackend,
    NativeLDABackend,
    XCOutput,
    default_backend,
)
from .lda import ex_dirac_density, lda_c_pz81, vx_dirac
from .numint import ExchangeCorrelationEngine, XCResult
from .vwn import lda_c_vwn

__all__ = [
    "DEFAULT_CODES",
    "DensitySample",
    "FunctionalBackend",
    "FunctionalHandle",
    "LibxcBackend",
    "NativeLDABackend",
    "XCOutput",
    "default_backend",
    "ex_dirac_density",
    "lda_c_pz81",
    "vx_dirac",
    "ExchangeCorrelationEngine",
    "XCResult",
    "lda_c_vwn",
]
