from enum import Enum


class Target(Enum):
    SHELL = "shell"
    BATCH = "batch"

    @property
    def suffix(self) -> str:
        return ".sh" if self is Target.SHELL else ".bat"

    @property
    def newline(self) -> str:
        # cmd.exe mis-resolves goto/call labels in LF-only files
        return "\n" if self is Target.SHELL else "\r\n"

    @classmethod
    def from_name(cls, name: str) -> "Target":
        key = name.lower()
        if key in ("shell", "sh", "bash", "linux"):
            return cls.SHELL
        if key in ("batch", "bat", "cmd", "windows"):
            return cls.BATCH
        raise ValueError(f"Unknown target: {name}")
