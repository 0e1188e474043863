"""The capability the code generator lowers through. Concrete IR lives behind this interface (see kscope.backend):
the code generator never inspects functions, values or storage, it only passes them back to the emitter.

All values are of the language's single numeric type (a double), except for the truth value returned by less_than,
which must go through bool_to_number before it can be used anywhere else.
"""

from abc import ABC, abstractmethod


class Emitter(ABC):
    """Superclass for IR emitters. Instructions are emitted into the function last passed to begin_function_body."""

    # functions

    @abstractmethod
    def declare_function(self, name, params):
        """Declares function name in the module with one numeric parameter per name in params. Returns the
        function handle.
        """

    @abstractmethod
    def lookup_function(self, name):
        """Returns the handle of the function called name in the module, or None."""

    @abstractmethod
    def arity(self, function):
        """Number of parameters function was declared with."""

    @abstractmethod
    def has_body(self, function):
        """Whether or not function already has a body (as opposed to being a bare declaration)."""

    @abstractmethod
    def begin_function_body(self, function):
        """Starts the body of function. Every instruction emitted afterwards goes into it."""

    @abstractmethod
    def argument(self, function, index):
        """Value of the index-th incoming argument of function."""

    @abstractmethod
    def return_value(self, value):
        """Terminates the current function body, returning value."""

    @abstractmethod
    def verify(self, function):
        """Well-formedness check of function. Returns a bool."""

    @abstractmethod
    def discard_function(self, function):
        """Removes function from the module entirely."""

    # values

    @abstractmethod
    def constant(self, value):
        """Numeric constant."""

    @abstractmethod
    def add(self, lhs, rhs):
        ...

    @abstractmethod
    def sub(self, lhs, rhs):
        ...

    @abstractmethod
    def mul(self, lhs, rhs):
        ...

    @abstractmethod
    def less_than(self, lhs, rhs):
        """Truth value of lhs < rhs. Not a number: see bool_to_number."""

    @abstractmethod
    def bool_to_number(self, value):
        """Converts a truth value to 0.0 or 1.0."""

    @abstractmethod
    def call(self, function, args):
        """Calls function with the ordered sequence of values args."""

    # storage

    @abstractmethod
    def allocate_local(self, name):
        """Fresh storage for one number in the current function. Returns the storage handle."""

    @abstractmethod
    def store(self, storage, value):
        ...

    @abstractmethod
    def load(self, storage):
        ...

    # display/execution

    @abstractmethod
    def render(self, function=None):
        """Textual IR of function, or of the whole module if function is None."""

    @property
    def executes(self):
        """Whether or not this emitter can run the code it emitted (see execute)."""
        return False

    def execute(self, function, args=()):
        """Runs function with the numbers args and returns its result. Only available if self.executes."""
        raise NotImplementedError(f"{type(self).__name__} cannot execute code")
