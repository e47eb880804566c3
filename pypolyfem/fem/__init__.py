from pypolyfem.fem.stiffness import p1_stiffness, p1_load, element_matrices
from pypolyfem.fem.mfd import MimeticFrame, mfd_inner_product, check_consistency
from pypolyfem.fem.vem import vem_local_matrix, vem_stiffness, vem_load

__all__ = ["p1_stiffness", "p1_load", "element_matrices",
           "MimeticFrame", "mfd_inner_product", "check_consistency",
           "vem_local_matrix", "vem_stiffness", "vem_load"]
