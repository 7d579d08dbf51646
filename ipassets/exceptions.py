class BlockProcessingError(Exception):
    def __init__(self, block_number: int, attempts: int):
        super().__init__(f'block {block_number} failed after {attempts} attempts')
        self.block_number = block_number
        self.attempts = attempts
