class Script:
    def __init__(self, newline="\n"):
        self.lines = []          # emitted lines, without line endings
        self.newline = newline
        self._label_id = 0
        self._tmp_id = 0

    def emit(self, line, depth=0):
        # returns the index of the emitted line
        self.lines.append("    " * depth + line if line else "")
        return len(self.lines) - 1

    def mark(self):
        return len(self.lines)

    def new_label(self, kind):
        self._label_id += 1
        return f"_rs_{kind}{self._label_id}"

    def new_temp(self):
        self._tmp_id += 1
        return f"_rs_t{self._tmp_id}"

    def render(self):
        return self.newline.join(self.lines) + self.newline
