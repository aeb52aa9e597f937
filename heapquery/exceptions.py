class HeapQueryException(Exception):
    '''Base class to extend in order to throw exception in heapquery.

    It takes as first argument the chain of the layers that caused the
    exception: each layer the exception passes through appends its own
    label (field name, record index, stage) so that the innermost element
    comes first.
    '''

    def __init__(self, chain, message=None, stage=None):
        self.chain = chain
        self.message = message
        self.stage = stage
        super().__init__(message)

    def __str__(self):
        where = ' > '.join(str(_) for _ in reversed(self.chain))
        if not where:
            return self.message or ''

        return f'{where}: {self.message}' if self.message else where

    def locate(self, stage, where=None):
        '''Append the record (if any) and the stage to the chain; it returns
        the exception itself so it can be re-raised.'''
        if where is not None:
            self.chain.append(where)
        if not self.chain or self.chain[-1] != str(stage):
            self.chain.append(str(stage))
        self.stage = stage

        return self


class SnapshotException(HeapQueryException):
    '''The input is not a heap snapshot we can read.'''
    pass


class UnpackException(HeapQueryException):
    pass


class RecordUnpackException(HeapQueryException):
    pass


class LayoutException(HeapQueryException):
    '''A flat array doesn't line up with the stride of its schema.'''
    pass


class TranslationException(HeapQueryException):
    pass


class StorageException(HeapQueryException):
    pass


class UnrecoverableException(HeapQueryException):
    '''This is useful when is not possible to let an unknown value
    slip through the parsing.'''

    def __init__(self, chain, message=None, stage=None, tag=None):
        self.tag = tag
        super().__init__(chain, message=message, stage=stage)
