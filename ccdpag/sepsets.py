"""Separating set producers."""

# License: GNU General Public License v3.0

from __future__ import print_function
import itertools


def depth_subsets(items, depth=-1):
    """Returns all subsets of items with at most depth elements.

    Subsets are ordered by ascending cardinality and, within a cardinality,
    lexicographically by position in items.

    Parameters
    ----------
    items : list
        Elements to choose from.
    depth : int, optional (default: -1)
        Maximum cardinality. -1 means unrestricted.

    Returns
    -------
    subsets : list of lists
    """
    items = list(items)
    if depth is None or depth < 0 or depth > len(items):
        depth = len(items)
    subsets = []
    for cardinality in range(depth + 1):
        subsets += [list(s) for s in itertools.combinations(items,
                                                            cardinality)]
    return subsets


class SepsetProducer():
    r"""Base class of separating set producers.

    Results are cached symmetrically, get_sepset(i, k) and get_sepset(k, i)
    return the same set.

    Parameters
    ----------
    graph : PAG
        Graph whose adjacencies define the candidate conditioning sets.
    cond_ind_test : IndependenceOracle
        Oracle used for all tests.
    depth : int, optional (default: -1)
        Maximum cardinality of conditioning sets. -1 means unrestricted.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    def __init__(self, graph, cond_ind_test, depth=-1, verbosity=0):
        if cond_ind_test is None:
            raise ValueError("cond_ind_test must be given.")
        if depth is None or depth < -1:
            raise ValueError("depth must be >= -1.")
        self.graph = graph
        self.cond_ind_test = cond_ind_test
        self.depth = depth
        self.verbosity = verbosity
        self.sepsets = {}
        self.var_names = None
        if graph is not None:
            self.var_names = graph.var_names

    @staticmethod
    def _pair_key(i, k):
        return (min(i, k), max(i, k))

    def _find_sepset(self, i, k):
        raise NotImplementedError("Sub-classes must implement _find_sepset.")

    def _candidate_sets(self, i, k):
        """Subsets of adj(i) \\ {k} followed by subsets of adj(k) \\ {i}."""
        adj_i = [a for a in self.graph.adjacent_nodes(i) if a != k]
        adj_k = [a for a in self.graph.adjacent_nodes(k) if a != i]
        return (depth_subsets(adj_i, self.depth)
                + depth_subsets(adj_k, self.depth))

    def get_sepset(self, i, k):
        """Returns a separating set of i and k or None if none is found."""
        key = self._pair_key(i, k)
        if key not in self.sepsets:
            self.sepsets[key] = self._find_sepset(i, k)
            if self.verbosity > 1:
                print("    Sepset(%s, %s) = %s" % (
                    self._names([i])[0], self._names([k])[0],
                    self._names(self.sepsets[key])))
        sepset = self.sepsets[key]
        if sepset is None:
            return None
        return list(sepset)

    def is_independent(self, i, k, conds):
        return self.cond_ind_test.is_independent(i, k, list(conds))

    def get_score(self):
        return self.cond_ind_test.get_score()

    def _names(self, conds):
        if conds is None or self.var_names is None:
            return conds
        return [self.var_names[c] for c in conds]


class SepsetsGreedy(SepsetProducer):
    r"""Returns the first conditioning set found that separates the pair.

    Candidate sets are subsets of the adjacencies of either variable,
    tested in order of ascending cardinality.
    """

    def _find_sepset(self, i, k):
        adj_i = [a for a in self.graph.adjacent_nodes(i) if a != k]
        adj_k = [a for a in self.graph.adjacent_nodes(k) if a != i]
        max_depth = max(len(adj_i), len(adj_k))
        if self.depth != -1:
            max_depth = min(max_depth, self.depth)
        for cardinality in range(max_depth + 1):
            for adj in (adj_i, adj_k):
                for conds in itertools.combinations(adj, cardinality):
                    if self.is_independent(i, k, conds):
                        return list(conds)
        return None


class SepsetsMinScore(SepsetProducer):
    r"""Returns the conditioning set with the minimal oracle score.

    All subsets of the adjacencies of either variable are scored. The best
    one is returned only if it renders the pair independent.
    """

    def _find_sepset(self, i, k):
        best_score = float('inf')
        best_conds = None
        best_independent = False
        for conds in self._candidate_sets(i, k):
            independent = self.is_independent(i, k, conds)
            score = self.get_score()
            if score < best_score:
                best_score = score
                best_conds = conds
                best_independent = independent
        if best_independent:
            return best_conds
        return None


class FixedSepsets(SepsetProducer):
    r"""Separating sets given by a precomputed dictionary.

    Parameters
    ----------
    sepsets : dict
        Dictionary of form {(i, k): [conds], ...}. Missing pairs have no
        separating set. Pairs need only be given in one direction.
    cond_ind_test : IndependenceOracle
        Oracle used for is_independent.
    var_names : list of str, optional (default: None)
        Names of variables.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    def __init__(self, sepsets, cond_ind_test, var_names=None, verbosity=0):
        SepsetProducer.__init__(self, graph=None,
                                cond_ind_test=cond_ind_test,
                                verbosity=verbosity)
        self.var_names = var_names
        for (i, k) in sepsets:
            key = self._pair_key(i, k)
            conds = sepsets[(i, k)]
            if key in self.sepsets and conds is not None and (
                    sorted(self.sepsets[key]) != sorted(conds)):
                raise ValueError("Conflicting sepsets given for (%d, %d)."
                                 % key)
            self.sepsets[key] = None if conds is None else list(conds)

    def _find_sepset(self, i, k):
        return None
