class CheckpointConflict(Exception):
    def __init__(self, name: str, expected: int, found):
        super().__init__(f'checkpoint {name}: expected last block {expected}, found {found}')
        self.name = name
        self.expected = expected
        self.found = found

class NotInitialized(Exception):
    def __init__(self, missing):
        super().__init__(f'database schema is not initialized, missing tables: {", ".join(missing)}')
        self.missing = missing
