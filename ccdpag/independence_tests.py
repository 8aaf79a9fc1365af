"""Conditional independence oracles used by CCD."""

# License: GNU General Public License v3.0

from __future__ import print_function


class IndependenceOracle():
    r"""Base class of conditional independence oracles.

    CCD only ever asks whether X _|_ Y | Z holds and, for the minimal score
    searches, for a comparable score of the last query. Lower scores denote
    stronger evidence for independence. Child classes must implement
    ``_run_test`` returning the pair (independent, score).

    Parameters
    ----------
    N : int
        Number of variables.
    var_names : list of str, optional (default: None)
        Names of variables.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    def __init__(self, N, var_names=None, verbosity=0):
        self.N = N
        if var_names is None:
            var_names = [r'$X^{%d}$' % i for i in range(N)]
        self.var_names = list(var_names)
        self.verbosity = verbosity
        self.last_score = None

    def _run_test(self, x, y, z):
        raise NotImplementedError("Sub-classes must implement _run_test.")

    def is_independent(self, x, y, z=None):
        """Tests x _|_ y | z.

        Parameters
        ----------
        x, y : int
            Variable indices.
        z : list of int, optional (default: None)
            Conditioning set.

        Returns
        -------
        independent : bool
        """
        if z is None:
            z = []
        z = [k for k in z if k != x and k != y]
        independent, score = self._run_test(x, y, z)
        self.last_score = score
        if self.verbosity > 1:
            print("        %s _|_ %s | %s: %s (score = %.3f)" % (
                self.var_names[x], self.var_names[y],
                [self.var_names[k] for k in z], independent, score))
        return independent

    def get_score(self):
        """Returns the score of the last test."""
        if self.last_score is None:
            raise ValueError("No test has been run yet.")
        return self.last_score


class TigramiteIndependenceTest(IndependenceOracle):
    r"""Wraps a tigramite conditional independence test.

    Any object with tigramite's ``run_test(X, Y, Z, tau_max,
    alpha_or_thres)`` interface can be used, e.g. ``ParCorr`` after
    ``set_dataframe`` was called, or ``OracleCI``. All variables are taken
    at lag zero. The score is ``alpha - pval``.

    Parameters
    ----------
    cond_ind_test : conditional independence test object
        Instantiated tigramite-style test.
    N : int
        Number of variables.
    alpha : float, optional (default: 0.05)
        Significance level.
    var_names : list of str, optional (default: None)
        Names of variables.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    def __init__(self, cond_ind_test, N, alpha=0.05, var_names=None,
                 verbosity=0):
        if cond_ind_test is None:
            raise ValueError("cond_ind_test must be given.")
        if isinstance(cond_ind_test, type):
            raise ValueError("cond_ind_test must be instantiated, e.g. "
                             "cond_ind_test = ParCorr().")
        if not 0. < alpha < 1.:
            raise ValueError("alpha must be in (0, 1).")
        IndependenceOracle.__init__(self, N=N, var_names=var_names,
                                    verbosity=verbosity)
        self.cond_ind_test = cond_ind_test
        self.alpha = alpha

    def _run_test(self, x, y, z):
        val, pval, dependent = self.cond_ind_test.run_test(
            X=[(x, 0)], Y=[(y, 0)], Z=[(k, 0) for k in z], tau_max=0,
            alpha_or_thres=self.alpha)
        return (not dependent), self.alpha - pval


class DSeparationOracle(IndependenceOracle):
    r"""Oracle of conditional independence X _|_ Y | Z given a graph.

    X _|_ Y | Z is decided by d-separation in a directed graph that may
    contain cycles. Latent variables are modelled by restricting the
    oracle to a subset of observed variables. The main use is for unit
    testing of CCD.

    Parameters
    ----------
    links : dict
        Dictionary of form {j: [i, ...], ...} listing the parents i of each
        variable j. Parents may also be given in tigramite form (i, 0).
    observed_vars : None or list, optional (default: None)
        Ordered subset of keys in links defining which variables are
        observed. Oracle variable k corresponds to observed_vars[k]. If
        None, all variables are observed.
    var_names : list of str, optional (default: None)
        Names of the observed variables.
    verbosity : int, optional (default: 0)
        Level of verbosity.
    """

    def __init__(self, links, observed_vars=None, var_names=None,
                 verbosity=0):
        self.parents = {}
        for j in links:
            self.parents[j] = []
            for par in links[j]:
                if isinstance(par, tuple):
                    if par[1] != 0:
                        raise ValueError("Only contemporaneous links are "
                                         "supported.")
                    par = par[0]
                if par not in links:
                    raise ValueError("Parent %s of %s is not a key of "
                                     "links." % (par, j))
                self.parents[j].append(par)

        self.children = dict((j, []) for j in self.parents)
        for j in self.parents:
            for par in self.parents[j]:
                self.children[par].append(j)

        if observed_vars is None:
            observed_vars = sorted(self.parents)
        else:
            if not set(observed_vars).issubset(set(self.parents)):
                raise ValueError("observed_vars must be subset of links.")
            if list(observed_vars) != sorted(observed_vars):
                raise ValueError("observed_vars must ordered.")
            if len(observed_vars) != len(set(observed_vars)):
                raise ValueError("observed_vars must not contain duplicates.")
        self.observed_vars = list(observed_vars)

        IndependenceOracle.__init__(self, N=len(self.observed_vars),
                                    var_names=var_names,
                                    verbosity=verbosity)
        self.dsepsets = {}

    def _ancestors(self, W):
        """Returns W and all its ancestors."""
        ancestors = set()
        todo = list(W)
        while todo:
            v = todo.pop()
            if v in ancestors:
                continue
            ancestors.add(v)
            todo.extend(self.parents[v])
        return ancestors

    def _is_dsep(self, x, y, Z):
        """Returns True if x and y are d-separated given Z."""
        Z = set(Z)
        ancestors = self._ancestors(Z)

        # Walk along active trails, direction 'up' means the trail arrived
        # from a child, 'down' that it arrived from a parent
        visited = set()
        todo = [(x, 'up')]
        while todo:
            v, direction = todo.pop()
            if (v, direction) in visited:
                continue
            visited.add((v, direction))

            if v == y and v not in Z:
                return False

            if direction == 'up' and v not in Z:
                todo.extend((p, 'up') for p in self.parents[v])
                todo.extend((c, 'down') for c in self.children[v])
            elif direction == 'down':
                if v not in Z:
                    todo.extend((c, 'down') for c in self.children[v])
                if v in ancestors:
                    todo.extend((p, 'up') for p in self.parents[v])
        return True

    def _run_test(self, x, y, z):
        key = (min(x, y), max(x, y), tuple(sorted(z)))
        if key not in self.dsepsets:
            self.dsepsets[key] = self._is_dsep(
                self.observed_vars[x], self.observed_vars[y],
                [self.observed_vars[k] for k in z])
        if self.dsepsets[key]:
            return True, -1.
        return False, 1.
