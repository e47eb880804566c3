from pypolyfem.autodiff.expressions import (Expression, Constant, Variable, Sum, Sub,
                                            Prod, Div, LinearCombination)
from pypolyfem.autodiff.residual import UnknownBlock, UnknownRegistry, Residual

__all__ = ["Expression", "Constant", "Variable", "Sum", "Sub", "Prod", "Div",
           "LinearCombination", "UnknownBlock", "UnknownRegistry", "Residual"]
