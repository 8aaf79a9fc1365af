"""CCD partial ancestral graphs."""

# License: GNU General Public License v3.0

from __future__ import print_function
from copy import deepcopy
import numpy as np

CIRCLE = 'o'
ARROW = '>'
TAIL = '-'


def _triple_key(i, j, k):
    """Canonical key of a triple, (i, j, k) and (k, j, i) coincide."""
    if i <= k:
        return (i, j, k)
    return (k, j, i)


class PAG():
    r"""Partial ancestral graph with underline and dotted underline triples.

    The endpoints are stored in a string array in the tigramite convention:
    graph[i, j] is a link string like 'o->' whose first character is the
    mark at i and whose last character is the mark at j. Arrowheads at i are
    written as '<', at j as '>'. graph[j, i] always holds the reversed link
    and non-adjacent pairs hold ''.

    Parameters
    ----------
    N : int
        Number of variables.
    var_names : list of str, optional (default: None)
        Names of variables, used in verbose output.

    Attributes
    ----------
    graph : array of shape [N, N]
        Link strings.
    """

    def __init__(self, N, var_names=None):
        self.N = N
        if var_names is None:
            var_names = [r'$X^{%d}$' % i for i in range(N)]
        if len(var_names) != N:
            raise ValueError("var_names must have length N = %d." % N)
        self.var_names = list(var_names)
        self.graph = np.zeros((N, N), dtype='<U3')
        self._underlines = set()
        # Insertion ordered, key -> triple as it was added
        self._dotted_underlines = {}

    @classmethod
    def from_skeleton(cls, skeleton, var_names=None):
        """Creates a PAG with all edges 'o-o' from a skeleton.

        Parameters
        ----------
        skeleton : array of shape [N, N] or [N, N, 1]
            Either a boolean (or 0/1) adjacency matrix or a tigramite string
            graph where non-empty entries denote adjacencies.
        var_names : list of str, optional (default: None)
            Names of variables.

        Returns
        -------
        pag : PAG
        """
        skeleton = np.asarray(skeleton)
        if skeleton.ndim == 3:
            if skeleton.shape[2] != 1:
                raise ValueError("Only non-time series skeletons of shape "
                                 "(N, N, 1) are supported.")
            skeleton = skeleton[:, :, 0]
        if skeleton.ndim != 2 or skeleton.shape[0] != skeleton.shape[1]:
            raise ValueError("skeleton must be of shape (N, N).")

        if skeleton.dtype.kind in ('U', 'S', 'O'):
            adjacent = skeleton != ''
        else:
            adjacent = skeleton.astype(bool)

        if np.any(adjacent != adjacent.T):
            raise ValueError("skeleton must be symmetric.")
        if np.any(np.diag(adjacent)):
            raise ValueError("skeleton must not contain self-loops.")

        pag = cls(skeleton.shape[0], var_names=var_names)
        pag.graph[adjacent] = 'o-o'
        return pag

    @staticmethod
    def _reverse_link(link):
        """Reverse a given link, taking care to replace > with < and vice versa."""

        if link == "":
            return ""

        if link[2] == ">":
            left_mark = "<"
        else:
            left_mark = link[2]

        if link[0] == "<":
            right_mark = ">"
        else:
            right_mark = link[0]

        return left_mark + link[1] + right_mark

    def copy(self):
        return deepcopy(self)

    def __eq__(self, other):
        if not isinstance(other, PAG):
            return NotImplemented
        return (self.N == other.N
                and np.array_equal(self.graph, other.graph)
                and self._underlines == other._underlines
                and set(self._dotted_underlines)
                    == set(other._dotted_underlines))

    # Adjacencies and links ##################################################

    def is_adjacent(self, i, j):
        return self.graph[i, j] != ""

    def adjacent_nodes(self, i):
        """Returns the sorted list of nodes adjacent to i."""
        return [int(j) for j in np.where(self.graph[i] != "")[0]]

    def edges(self):
        """Returns all adjacent pairs (i, j) with i < j."""
        return [(int(i), int(j)) for (i, j) in zip(*np.where(self.graph != ""))
                if i < j]

    def get_link(self, i, j):
        return str(self.graph[i, j])

    def set_link(self, i, j, link):
        """Sets graph[i, j] = link and the reversed link at graph[j, i]."""
        if i == j:
            raise ValueError("Self-loops are not allowed.")
        self.graph[i, j] = link
        self.graph[j, i] = self._reverse_link(link)

    def get_endpoint(self, i, j):
        """Returns the mark at j on the edge between i and j.

        Arrowheads are always returned as '>'. Returns None if i and j are
        not adjacent.
        """
        link = self.graph[i, j]
        if link == "":
            return None
        return link[2]

    def set_endpoint(self, i, j, mark):
        """Sets the mark at j on the edge between i and j."""
        link = self.graph[i, j]
        if link == "":
            raise ValueError("%s and %s are not adjacent." % (
                self.var_names[i], self.var_names[j]))
        if mark not in (CIRCLE, ARROW, TAIL):
            raise ValueError("mark must be one of 'o', '>', '-'.")
        self.set_link(i, j, link[:2] + mark)

    def remove_edge(self, i, j):
        self.graph[i, j] = ""
        self.graph[j, i] = ""

    def add_directed_edge(self, i, j):
        """Sets the edge i --> j (adjacency need not exist beforehand)."""
        self.set_link(i, j, '-->')

    def reorient_all_with(self, mark):
        """Sets both marks of every edge to mark."""
        left_mark = '<' if mark == ARROW else mark
        for (i, j) in self.edges():
            self.set_link(i, j, left_mark + '-' + mark)

    def is_nondirected(self, i, j):
        """True if i o-o j."""
        return self.graph[i, j] == 'o-o'

    def points_towards(self, i, j):
        """True if the edge is i --> j, i.e., tail at i and arrowhead at j."""
        return self.graph[i, j] == '-->'

    def is_def_collider(self, i, j, k):
        """True if i *-> j <-* k."""
        return (self.get_endpoint(i, j) == ARROW
                and self.get_endpoint(k, j) == ARROW)

    # Triples ################################################################

    def add_underline_triple(self, i, j, k):
        self._underlines.add(_triple_key(i, j, k))

    def is_underline_triple(self, i, j, k):
        return _triple_key(i, j, k) in self._underlines

    def underline_triples(self):
        return sorted(self._underlines)

    def add_dotted_underline_triple(self, i, j, k):
        key = _triple_key(i, j, k)
        if key not in self._dotted_underlines:
            self._dotted_underlines[key] = (i, j, k)

    def is_dotted_underline_triple(self, i, j, k):
        return _triple_key(i, j, k) in self._dotted_underlines

    def dotted_underline_triples(self):
        """Returns the dotted underline triples in the order they were added."""
        return list(self._dotted_underlines.values())

    # Output #################################################################

    def print_graph(self):
        """Prints all links and triples."""
        for (i, j) in self.edges():
            print("    %s %s %s" % (self.var_names[i], self.graph[i, j],
                                    self.var_names[j]))
        for (i, j, k) in self.underline_triples():
            print("    Underline <%s, %s, %s>" % (
                self.var_names[i], self.var_names[j], self.var_names[k]))
        for (i, j, k) in self.dotted_underline_triples():
            print("    Dotted underline <%s, %s, %s>" % (
                self.var_names[i], self.var_names[j], self.var_names[k]))
