"""CCD causal discovery for cyclic causal models."""

# License: GNU General Public License v3.0

from __future__ import print_function
import warnings
import itertools
from copy import deepcopy
import numpy as np
from joblib import Parallel, delayed

from .pag import PAG, CIRCLE, ARROW, TAIL, _triple_key
from .sepsets import depth_subsets, SepsetsGreedy, SepsetsMinScore


def _split_range(start, stop, chunk):
    """Recursively halves [start, stop) into pieces of at most chunk nodes."""
    if stop - start <= chunk:
        return [(start, stop)]
    mid = (start + stop) // 2
    return _split_range(start, mid, chunk) + _split_range(mid, stop, chunk)


def _detect_colliders(graph, cond_ind_test, nodes, depth):
    """Classifies all unshielded triples a - b - c centred at nodes.

    For each triple the conditioning set with minimal score is searched
    among subsets of adj(a) and subsets of adj(c). The triple is a
    non-collider if b is in that set and a collider otherwise.

    Returns
    -------
    colliders, noncolliders : dicts
        Dictionaries of form {(a, b, c): score}.
    """
    colliders = {}
    noncolliders = {}
    for b in nodes:
        adj = graph.adjacent_nodes(b)
        if len(adj) < 2:
            continue
        for (a, c) in itertools.combinations(adj, 2):
            # Skip shielded triples
            if graph.is_adjacent(a, c):
                continue

            score = np.inf
            S = None
            for (x, y) in ((a, c), (c, a)):
                for conds in depth_subsets(graph.adjacent_nodes(x), depth):
                    cond_ind_test.is_independent(x, y, conds)
                    _score = cond_ind_test.get_score()
                    if _score < score:
                        score = _score
                        S = conds

            if S is None:
                raise ValueError("No conditioning set with finite score "
                                 "found for triple (%s, %s, %s)." % (
                                     graph.var_names[a], graph.var_names[b],
                                     graph.var_names[c]))

            if b in S:
                noncolliders[(a, b, c)] = score
            else:
                colliders[(a, b, c)] = score

    return colliders, noncolliders


class CCD():
    r"""Cyclic Causal Discovery (CCD) algorithm.

    CCD learns a partial ancestral graph (PAG) that represents the
    equivalence class of possibly cyclic causal structures consistent with
    the conditional independencies of an oracle. Next to the link marks the
    PAG carries underline triples (non-colliders) and dotted underline
    triples (non-colliders certified by a super separating set). The
    algorithm is described in

    Richardson, T. & Spirtes, P. Automated discovery of linear feedback
    models. In Glymour & Cooper (eds.), Computation, Causation, and
    Discovery, pp. 253-302, MIT Press, 1999.

    The main function is ``run_ccd``. Starting from an undirected skeleton
    it runs the following phases:

    1. Skeleton pruning: edges whose endpoints can be separated given
       subsets of their adjacencies are removed.
    2. Collider detection: every unshielded triple A - B - C is classified
       by the conditioning set of minimal score, colliders are oriented as
       A --> B <-- C (in order of descending score) and non-colliders are
       recorded as underline triples.
    3. Rule R1: whenever an edge A --> B is created, B o-o C is oriented as
       B --> C for underline triples <A, B, C>, recursively.
    4. Step C: tails from separating sets of non-adjacent variables.
    5. Step D: dotted underline triples by iteratively deepened searches
       of super separating sets.
    6. Step E: orientations implied by super separating sets. If a
       required orientation would create an unvetted collider, no valid
       PAG exists and the search is aborted.
    7. Step F: orientations from the union of adjacencies of dotted
       underline triples.

    Parameters
    ----------
    cond_ind_test : IndependenceOracle
        Conditional independence oracle, e.g. ``DSeparationOracle`` or
        ``TigramiteIndependenceTest``.
    var_names : list of str, optional (default: None)
        Names of variables. Defaults to the names of the oracle.
    verbosity : int, optional (default: 0)
        Verbose levels 0, 1, 2.

    Attributes
    ----------
    N : int
        Number of variables.
    nodes : tuple
        Variable indices, fixed for the whole run.
    knowledge : Knowledge or None
        Background knowledge, see ``set_knowledge``.
    ccd_results : dict
        Results of the last call of ``run_ccd``.
    """

    def __init__(self, cond_ind_test, var_names=None, verbosity=0):
        if cond_ind_test is None:
            raise ValueError("CCD requires a conditional independence test.")
        if isinstance(cond_ind_test, type):
            raise ValueError("CCD requires that cond_ind_test "
                             "is instantiated, e.g. cond_ind_test = "
                             "DSeparationOracle(links).")
        self.cond_ind_test = cond_ind_test
        self.N = cond_ind_test.N
        self.nodes = tuple(range(self.N))
        if var_names is None:
            var_names = getattr(cond_ind_test, 'var_names', None)
        if var_names is None:
            var_names = [r'$X^{%d}$' % i for i in self.nodes]
        if len(var_names) != self.N:
            raise ValueError("var_names must have length N = %d." % self.N)
        self.var_names = list(var_names)
        self.verbosity = verbosity

        self.knowledge = None
        self.depth = -1
        self.apply_r1 = True
        self.ccd_results = None

    def set_knowledge(self, knowledge):
        """Sets background knowledge.

        Parameters
        ----------
        knowledge : Knowledge
            Object with an ``is_forbidden(i, j)`` method. No orientation
            i --> j is made if it returns True.
        """
        if knowledge is None:
            raise ValueError("knowledge must not be None.")
        if not hasattr(knowledge, 'is_forbidden'):
            raise ValueError("knowledge must provide is_forbidden(i, j).")
        self.knowledge = knowledge

    def _is_forbidden(self, i, j):
        return self.knowledge is not None and self.knowledge.is_forbidden(i, j)

    def _describe_knowledge(self):
        if self.knowledge is None or (hasattr(self.knowledge, 'is_empty')
                                      and self.knowledge.is_empty()):
            return "none"
        return "given"

    def _name_triple(self, triple):
        return "<%s, %s, %s>" % tuple(self.var_names[v] for v in triple)

    def _print_phase(self, name):
        if self.verbosity > 0:
            print("\n----------------------------")
            print(name)
            print("----------------------------")

    def run_ccd(self, skeleton,
                sepsets=None,
                depth=-1,
                apply_r1=True,
                prune_skeleton=True,
                n_jobs=1,
                prefer=None,
                chunk=20):
        """Runs the CCD algorithm.

        Parameters
        ----------
        skeleton : array of shape [N, N] or [N, N, 1]
            Initial adjacencies, either as boolean matrix or as tigramite
            string graph. Marks are ignored, all edges start as 'o-o'.
        sepsets : SepsetProducer, optional (default: None)
            Separating sets used in Steps C, D and F. If None,
            ``SepsetsMinScore`` on the pruned skeleton is used.
        depth : int, optional (default: -1)
            Maximum cardinality of conditioning subsets searched in
            collider detection and Step D. -1 means unrestricted.
        apply_r1 : bool, optional (default: True)
            Whether to propagate orientations along underline triples.
        prune_skeleton : bool, optional (default: True)
            Whether to remove skeleton edges whose endpoints are separated
            given subsets of their adjacencies.
        n_jobs : int, optional (default: 1)
            Number of joblib workers for collider detection.
        prefer : {None, 'threads', 'processes'}, optional (default: None)
            Soft hint for the joblib backend.
        chunk : int, optional (default: 20)
            Number of nodes processed by one collider detection task.

        Returns
        -------
        graph : array of shape [N, N] or None
            Resulting PAG link strings, None if no valid PAG exists.
        pag : PAG or None
            Resulting PAG including underline triples.
        valid : bool
            False if Step E found the independencies inconsistent with a
            PAG.
        colliders, noncolliders : dicts
            Scores of unshielded triples, {(a, b, c): score}.
        rejected_colliders : list
            Colliders not oriented because of an arrowhead at a or c.
        underline_triples : list
            Underline triples (a, b, c) with a < c.
        dotted_underline_triples : list
            Dotted underline triples in order of discovery.
        supsepsets : dict
            Super separating sets of dotted underline triples.
        sepsets : dict
            Separating sets computed during the run.
        """
        if depth is None or depth < -1:
            raise ValueError("depth must be >= -1.")
        if chunk < 1:
            raise ValueError("chunk must be >= 1.")
        self.depth = depth
        self.apply_r1 = apply_r1

        pag = PAG.from_skeleton(skeleton, var_names=self.var_names)
        if pag.N != self.N:
            raise ValueError("skeleton must be of shape (%d, %d)." % (
                self.N, self.N))

        if self.verbosity > 0:
            print("\n##\n## Running CCD\n##\n"
                  "\nParameters:"
                  "\ndepth = %s" % depth +
                  "\napply_r1 = %s" % apply_r1 +
                  "\nprune_skeleton = %s" % prune_skeleton +
                  "\nn_jobs = %s" % n_jobs +
                  "\nknowledge = %s" % self._describe_knowledge())

        if prune_skeleton:
            self._prune_skeleton(pag)

        pag.reorient_all_with(CIRCLE)

        if sepsets is None:
            sepsets = SepsetsMinScore(pag, self.cond_ind_test, depth=depth,
                                      verbosity=self.verbosity)
        supsepsets = {}

        colliders, noncolliders, rejected = self._add_colliders(
            pag, n_jobs=n_jobs, prefer=prefer, chunk=chunk)
        self._orient_r1_all(pag)

        self._step_c(pag, sepsets)
        self._step_d(pag, sepsets, supsepsets)
        valid = self._step_e(pag, supsepsets)
        if valid:
            self._step_f(pag, sepsets, supsepsets)
        elif self.verbosity > 0:
            print("\nIndependencies are inconsistent with a PAG, "
                  "aborting.")

        if valid and self.verbosity > 0:
            print("\nResulting PAG:")
            pag.print_graph()

        results = {
            'graph': pag.graph if valid else None,
            'pag': pag if valid else None,
            'valid': valid,
            'colliders': colliders,
            'noncolliders': noncolliders,
            'rejected_colliders': rejected,
            'underline_triples': pag.underline_triples(),
            'dotted_underline_triples': pag.dotted_underline_triples(),
            'supsepsets': supsepsets,
            'sepsets': dict(sepsets.sepsets),
            }
        self.ccd_results = results
        return results

    def search(self, skeleton, **kwargs):
        """Runs ``run_ccd`` and returns the PAG, or None if none exists."""
        return self.run_ccd(skeleton, **kwargs)['pag']

    def _prune_skeleton(self, pag):
        """Removes edges whose endpoints are separated by a subset of their
        adjacencies in the initial skeleton."""
        self._print_phase("Skeleton pruning")
        # Candidate sets refer to the unpruned skeleton
        greedy = SepsetsGreedy(pag.copy(), self.cond_ind_test,
                               depth=self.depth, verbosity=self.verbosity)
        for (i, j) in pag.edges():
            if greedy.get_sepset(i, j) is not None:
                if self.verbosity > 1:
                    print("    Remove %s o-o %s" % (self.var_names[i],
                                                    self.var_names[j]))
                pag.remove_edge(i, j)

    def _add_colliders(self, pag, n_jobs=1, prefer=None, chunk=20):
        """Finds and orients colliders among all unshielded triples.

        Returns
        -------
        colliders, noncolliders : dicts
            Dictionaries of form {(a, b, c): score}.
        rejected : list
            Colliders that were not oriented.
        """
        self._print_phase("Collider orientation phase")

        ranges = _split_range(0, len(self.nodes), chunk)
        if len(ranges) == 1:
            chunk_results = [_detect_colliders(pag, self.cond_ind_test,
                                               self.nodes, self.depth)]
        else:
            # Every task gets its own copy since oracles remember the
            # score of their last test
            chunk_results = Parallel(n_jobs=n_jobs, prefer=prefer)(
                delayed(_detect_colliders)(pag,
                                           deepcopy(self.cond_ind_test),
                                           self.nodes[start:stop],
                                           self.depth)
                for (start, stop) in ranges)

        colliders = {}
        noncolliders = {}
        for (chunk_colliders, chunk_noncolliders) in chunk_results:
            colliders.update(chunk_colliders)
            noncolliders.update(chunk_noncolliders)

        # Descending score, ties by triple
        ordered = sorted(colliders, key=lambda t: (-colliders[t], t))

        rejected = []
        for (a, b, c) in ordered:
            if (pag.get_endpoint(b, a) == ARROW
                    or pag.get_endpoint(b, c) == ARROW
                    or self._is_forbidden(a, b)
                    or self._is_forbidden(c, b)):
                if self.verbosity > 1:
                    print("    Collider %s not oriented" %
                          self._name_triple((a, b, c)))
                rejected.append((a, b, c))
                continue
            if self.verbosity > 1:
                print("    Collider %s: orient %s --> %s <-- %s" % (
                    self._name_triple((a, b, c)), self.var_names[a],
                    self.var_names[b], self.var_names[c]))
            pag.add_directed_edge(a, b)
            pag.add_directed_edge(c, b)

        for triple in sorted(noncolliders):
            if self.verbosity > 1:
                print("    Non-collider %s: underline" %
                      self._name_triple(triple))
            pag.add_underline_triple(*triple)

        return colliders, noncolliders, rejected

    def _orient_r1_all(self, pag):
        """Applies rule R1 starting from every directed edge."""
        for (i, j) in pag.edges():
            if pag.points_towards(j, i):
                self._orient_r1(j, i, pag)
            elif pag.points_towards(i, j):
                self._orient_r1(i, j, pag)

    def _orient_r1(self, a, b, pag):
        """Propagates a newly created a --> b along underline triples."""
        if not self.apply_r1:
            return
        visited = set()
        for c in pag.adjacent_nodes(b):
            if c == a:
                continue
            self._orient_r1_visit(a, b, c, pag, visited)

    def _orient_r1_visit(self, a, b, c, pag, visited):
        """Orients b o-o c as b --> c if <a, b, c> is an underline triple
        and continues from c."""
        if (b, c) in visited:
            return
        if not pag.is_nondirected(b, c):
            return
        if not pag.is_underline_triple(a, b, c):
            return
        if pag.points_towards(c, b):
            return
        if self._is_forbidden(b, c):
            return

        visited.add((b, c))
        if self.verbosity > 1:
            print("    R1: %s --> %s o-o %s with underline, orient "
                  "%s --> %s" % (self.var_names[a], self.var_names[b],
                                 self.var_names[c], self.var_names[b],
                                 self.var_names[c]))
        pag.add_directed_edge(b, c)

        # b --> c is kept whether or not propagation continues past c
        for d in pag.adjacent_nodes(c):
            if d == b:
                continue
            self._orient_r1_visit(b, c, d, pag, visited)

    def _would_create_bad_collider(self, x, y, pag):
        """True if orienting x --> y adds an arrowhead at y next to an
        existing one."""
        for z in pag.adjacent_nodes(y):
            if z == x:
                continue
            if (pag.get_endpoint(x, y) != ARROW
                    and pag.get_endpoint(z, y) == ARROW):
                return True
        return False

    def _orient(self, b, d, pag, rule):
        if self.verbosity > 1:
            print("    %s: orient %s %s %s as %s --> %s" % (
                rule, self.var_names[b], pag.get_link(b, d),
                self.var_names[d], self.var_names[b], self.var_names[d]))
        pag.add_directed_edge(b, d)
        self._orient_r1(b, d, pag)

    def _get_sepset(self, sepsets, i, k):
        sepset = sepsets.get_sepset(i, k)
        if sepset is None:
            warnings.warn("No separating set of non-adjacent %s and %s "
                          "found, using the empty set." % (
                              self.var_names[i], self.var_names[k]))
            return []
        return sepset

    def _step_c(self, pag, sepsets):
        """Orients x *-* y as y --> x if some variable a that is adjacent
        to neither x nor y is dependent on x given Sepset(a, y)."""
        self._print_phase("Step C")

        for (i, j) in pag.edges():
            for (x, y) in ((i, j), (j, i)):
                adj_x = pag.adjacent_nodes(x)
                adj_y = pag.adjacent_nodes(y)

                if any(pag.get_endpoint(node, x) == ARROW
                       and pag.is_underline_triple(y, x, node)
                       for node in adj_x):
                    continue

                # Orientable
                if not (pag.get_endpoint(y, x) == CIRCLE
                        and pag.get_endpoint(x, y) in (CIRCLE, TAIL)):
                    continue
                if self._would_create_bad_collider(y, x, pag):
                    continue
                if self._is_forbidden(y, x):
                    continue

                for a in self.nodes:
                    if a == x or a == y or a in adj_x or a in adj_y:
                        continue
                    sepset = sepsets.get_sepset(a, y)
                    if sepset is None:
                        continue
                    if not sepsets.is_independent(a, x, sepset):
                        self._orient(y, x, pag, rule="Step C")
                        break

    def _local(self, pag, z):
        """Nodes adjacent to z or forming a collider x *-> y <-* z."""
        local = []
        for x in self.nodes:
            if x == z:
                continue
            if pag.is_adjacent(z, x):
                local.append(x)
                continue
            for y in self.nodes:
                if y == z or y == x:
                    continue
                if pag.is_def_collider(x, y, z):
                    local.append(x)
                    break
        return local

    def _local_minus_sep(self, sepsets, local, a, b, c):
        """Returns Local(a) \\ (Sepset(a, c) + {b, c})."""
        sepset = self._get_sepset(sepsets, a, c)
        return [x for x in local[a] if x not in sepset and x not in (b, c)]

    def _collider_triples(self, pag):
        """Yields unshielded triples (a, b, c) with a *-> b <-* c."""
        for b in self.nodes:
            adj = pag.adjacent_nodes(b)
            if len(adj) < 2:
                continue
            for (a, c) in itertools.combinations(adj, 2):
                if pag.is_adjacent(a, c):
                    continue
                if pag.is_def_collider(a, b, c):
                    yield (a, b, c)

    def _max_count_local_minus_sep(self, pag, sepsets, local):
        """Largest |Local(a) \\ (Sepset(a, c) + {b, c})| over colliders
        a *-> b <-* c that are not underline triples, -1 if none."""
        max_count = -1
        for (a, b, c) in self._collider_triples(pag):
            if pag.is_underline_triple(a, b, c):
                continue
            count = len(self._local_minus_sep(sepsets, local, a, b, c))
            max_count = max(max_count, count)
        return max_count

    def _step_d(self, pag, sepsets, supsepsets):
        """Finds dotted underline triples.

        For each collider a *-> b <-* c, subsets T of size m of
        Local(a) \\ (Sepset(a, c) + {b, c}) are searched for a super
        separating set T + {b} + Sepset(a, c) of a and c, for m = 1, 2, ...
        """
        self._print_phase("Step D")

        local = dict((node, self._local(pag, node)) for node in self.nodes)

        m = 1
        while (self._max_count_local_minus_sep(pag, sepsets, local) >= m
               and (self.depth == -1 or m <= self.depth)
               and m <= self.N):
            if self.verbosity > 1:
                print("\n    Testing super sepsets with |T| = %d" % m)
            for (a, b, c) in self._collider_triples(pag):
                if _triple_key(a, b, c) in supsepsets:
                    continue

                local_minus_sep = self._local_minus_sep(sepsets, local,
                                                        a, b, c)
                if len(local_minus_sep) < m:
                    continue

                sepset = self._get_sepset(sepsets, a, c)
                for T in itertools.combinations(local_minus_sep, m):
                    conds = list(T) + [b]
                    conds += [s for s in sepset if s not in conds]

                    if self.cond_ind_test.is_independent(a, c, conds):
                        supsepsets[_triple_key(a, b, c)] = conds
                        pag.add_dotted_underline_triple(a, b, c)
                        if self.verbosity > 1:
                            print("    Dotted underline %s with super "
                                  "sepset %s" % (
                                      self._name_triple((a, b, c)),
                                      [self.var_names[s] for s in conds]))
                        break
            m += 1

    def _get_supsepset(self, supsepsets, triple):
        key = _triple_key(*triple)
        if key not in supsepsets:
            raise ValueError("Dotted underline triple %s has no super "
                             "sepset." % self._name_triple(triple))
        return supsepsets[key]

    def _step_e(self, pag, supsepsets):
        """Orients edges b *-o d for dotted underline triples <a, b, c> and
        neighbors d of a.

        Returns
        -------
        valid : bool
            False if a required orientation would create an unvetted
            collider, i.e., no PAG is consistent with the independencies.
        """
        self._print_phase("Step E")

        if len(self.nodes) < 4:
            return True

        for triple in pag.dotted_underline_triples():
            a, b = triple[0], triple[1]
            supsepset = self._get_supsepset(supsepsets, triple)

            for d in pag.adjacent_nodes(a):
                if d == b:
                    continue

                if d in supsepset:
                    if pag.get_endpoint(b, d) != CIRCLE:
                        continue
                    # Orient b *-o d as b *-- d
                    if self.verbosity > 1:
                        print("    Step E: set tail at %s on %s %s %s" % (
                            self.var_names[d], self.var_names[b],
                            pag.get_link(b, d), self.var_names[d]))
                    pag.set_endpoint(b, d, TAIL)
                else:
                    if pag.get_endpoint(d, b) == ARROW:
                        continue
                    if pag.get_endpoint(b, d) != CIRCLE:
                        continue
                    if self._is_forbidden(b, d):
                        continue
                    if self._would_create_bad_collider(b, d, pag):
                        if self.verbosity > 0:
                            print("    Step E: orienting %s --> %s for %s "
                                  "creates a bad collider" % (
                                      self.var_names[b], self.var_names[d],
                                      self._name_triple(triple)))
                        return False
                    self._orient(b, d, pag, rule="Step E")

        return True

    def _step_f(self, pag, sepsets, supsepsets):
        """Orients b *-o d as b --> d for dotted underline triples
        <a, b, c> if a and c are dependent given SupSepset(a, b, c) + {d}."""
        self._print_phase("Step F")

        for triple in pag.dotted_underline_triples():
            a, b, c = triple
            supsepset = self._get_supsepset(supsepsets, triple)

            adj = sorted(set(pag.adjacent_nodes(a)) | set(
                pag.adjacent_nodes(c)))

            for d in adj:
                if pag.get_endpoint(b, d) != CIRCLE:
                    continue
                if pag.get_endpoint(d, b) == ARROW:
                    continue
                if pag.is_adjacent(a, d) and pag.is_adjacent(c, d):
                    continue
                if not pag.is_adjacent(b, d):
                    continue

                conds = list(supsepset)
                if d not in conds:
                    conds.append(d)

                if self._would_create_bad_collider(b, d, pag):
                    continue
                if self._is_forbidden(b, d):
                    continue

                if not sepsets.is_independent(a, c, conds):
                    self._orient(b, d, pag, rule="Step F")
