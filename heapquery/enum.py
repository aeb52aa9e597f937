from enum import Enum


class Stage(Enum):
    '''The step of the ingestion pass an error comes from'''
    PARSE    = 'parse'
    NODE     = 'node'
    EDGE     = 'edge'
    LOCATION = 'location'
    WRITE    = 'write'

    def __str__(self):
        return self.value
