"""CCD: cyclic causal discovery of partial ancestral graphs."""

# License: GNU General Public License v3.0

from .pag import PAG, CIRCLE, ARROW, TAIL
from .ccd import CCD
from .knowledge import Knowledge
from .independence_tests import (IndependenceOracle,
                                 TigramiteIndependenceTest,
                                 DSeparationOracle)
from .sepsets import (depth_subsets, SepsetProducer, SepsetsGreedy,
                      SepsetsMinScore, FixedSepsets)

__version__ = "0.1.0"
