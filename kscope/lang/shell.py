"""Handles interactive/command-line mode for the kscope interpreter. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """kscope interpreter shell. Every complete line is added to one long-lived session, so definitions persist."""
    intro = "kscope :: Python frontend\nType '?' or 'help' for more information."
    prompt = "ready> "
    secondary_prompt = ". "  # used for line continuations
    _tmp_prompt = "ready> "  # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess

        self._tmp_line = ""
        self._tmp_line_num = 0
        self.line_num = 0

    @staticmethod
    def needs_continuation(line):
        """Whether or not line has unclosed parentheses, outside of comments."""
        code = "\n".join(part.split("#")[0] for part in line.splitlines())
        return code.count("(") > code.count(")")

    def default(self, line):
        """Parses, lowers and evaluates arbitrary kscope input."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            self.line_num += 1
            if not self._tmp_line:
                self._tmp_line_num = self.line_num
            line = self._tmp_line + line + "\n"

            if self.needs_continuation(line):
                self._tmp_line = line
                self.prompt = self.secondary_prompt
                return

            self._tmp_line = ""
            self.prompt = self._tmp_prompt

            self.sess.add(line, self._tmp_line_num)
            self.sess.run()

            while self.sess.results:
                print(f"Evaluated to {self.sess.pop()}")

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        print("Welcome to the kscope interpreter!\n\n"
              "kscope is a tiny expression language with a single type: double-precision floats.\n"
              "Functions are defined with 'def', host functions declared with 'extern', and \n"
              "local variables bound with 'var ... in ...'. Operators are < + - * (in increasing\n"
              "order of precedence). '#' starts a comment.\n\n"
              "Try it out by typing 'def add(a b) a + b'. Next, try typing 'add(4, 5)'. This \n"
              "will call 'add', giving 9.0 as the result.")

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_EOF(self, arg):
        """Exits interpreter."""
        print()
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        return True
