from pypolyfem.assembly.global_matrix import assemble, node_dof_map
from pypolyfem.assembly.residual_assembly import assemble_mfd_residual, assemble_vem_residual
from pypolyfem.assembly.boundary_conditions import (mark_dirichlet, dirichlet_mask, free_mask,
                                                    set_boundary_values)
from pypolyfem.assembly.load_vector import p1_element_load, vem_element_load, assemble_load

__all__ = ["assemble", "node_dof_map", "assemble_mfd_residual", "assemble_vem_residual",
           "mark_dirichlet", "dirichlet_mask", "free_mask", "set_boundary_values",
           "p1_element_load", "vem_element_load", "assemble_load"]
