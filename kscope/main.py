"""Runs kscope source files or the interactive shell. Also uses error handling context manager. Called from the kscope
console script.
"""

import argparse
import sys

from kscope.lang.error import ErrorHandler
from kscope.lang.session import Session
from kscope.lang.shell import Shell


BACKENDS = ("reference", "llvm")


def make_emitter(backend):
    """Returns a fresh emitter for backend. The LLVM backend is only imported when asked for."""
    if backend == "llvm":
        from kscope.backend.llvm import LLVMEmitter
        return LLVMEmitter()

    from kscope.backend.reference import ReferenceEmitter
    return ReferenceEmitter()


def main(argv=None):
    """Runs kscope. Called from the kscope console script."""
    assert sys.version_info >= (3, 7), "kscope cannot be run with python < 3.7"

    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="kscope")
        parser.add_argument("file", help="file to run (if empty, goes to command-line mode)", nargs="?")
        parser.add_argument("--backend", choices=BACKENDS, default="reference",
                            help="IR backend to lower to (only the reference backend evaluates expressions)")
        parser.add_argument("--dump", action="store_true", help="print the IR of every lowered unit")
        args = parser.parse_args(argv)

        emitter = make_emitter(args.backend)

        if args.file is not None:
            sess = Session(error_handler, args.file, emitter, cmd_line=False, dump=args.dump)
            sess.run()

            for result in sess.results:
                print(result)

        else:
            Shell(Session(error_handler, Session.SH_FILE, emitter, cmd_line=True, dump=args.dump)).cmdloop()


if __name__ == "__main__":
    main()
