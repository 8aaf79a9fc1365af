"""Background knowledge about directed links."""

# License: GNU General Public License v3.0


class Knowledge():
    r"""Forbidden and required directed links.

    A link i --> j is forbidden if it was explicitly forbidden or if the
    opposite link j --> i is required. CCD never orients an edge as i --> j
    when is_forbidden(i, j) is True.

    Parameters
    ----------
    forbidden : iterable of tuples, optional (default: ())
        Pairs (i, j) such that i --> j is not allowed.
    required : iterable of tuples, optional (default: ())
        Pairs (i, j) such that i --> j is required.
    """

    def __init__(self, forbidden=(), required=()):
        self.forbidden = set()
        self.required = set()
        for (i, j) in forbidden:
            self.set_forbidden(i, j)
        for (i, j) in required:
            self.set_required(i, j)

    def set_forbidden(self, i, j):
        if self.is_required(i, j):
            raise ValueError("Link %d --> %d is already required." % (i, j))
        self.forbidden.add((i, j))

    def set_required(self, i, j):
        if (i, j) in self.forbidden:
            raise ValueError("Link %d --> %d is already forbidden." % (i, j))
        if self.is_required(j, i):
            raise ValueError("Link %d --> %d contradicts required link "
                             "%d --> %d." % (i, j, j, i))
        self.required.add((i, j))

    def is_forbidden(self, i, j):
        return (i, j) in self.forbidden or (j, i) in self.required

    def is_required(self, i, j):
        return (i, j) in self.required

    def is_empty(self):
        return not self.forbidden and not self.required
