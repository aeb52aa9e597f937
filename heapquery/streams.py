import io
import json
import logging
from pathlib import PurePath

from .enum import Stage
from .exceptions import SnapshotException


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around the different objects a snapshot can be
    read from so that they can be used in the same way: a path (str or
    pathlib), the raw contents as bytes or an already opened file object.'''
    def __init__(self, obj):
        self._type = type(obj)
        self.obj = obj
        self.path = None

        init_method_name = 'init_%s' % ('path' if isinstance(obj, PurePath) else self.obj.__class__.__name__)

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.path or self._type.__name__)

    def init_str(self):
        '''We think this is a path'''
        self.path = self.obj

    def init_path(self):
        self.path = str(self.obj)

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_file(self):
        if not hasattr(self.obj, 'read'):
            raise ValueError('\'%s\' is the wrong kind of object to read a snapshot from' % self._type.__name__)

    def read_all(self) -> str:
        '''Return the whole contents as text, the snapshot is UTF-8 encoded.'''
        try:
            if self.path is not None:
                logger.debug('opening path \'%s\'' % self.path)
                with open(self.path, 'rb') as f:
                    data = f.read()
            else:
                data = self.obj.read()
        except OSError as e:
            raise SnapshotException(chain=[], message=f'unable to read {self!r}: {e}').locate(Stage.PARSE) from e

        if isinstance(data, str):
            return data

        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise SnapshotException(chain=[], message=f'{self!r} is not UTF-8 text: {e}').locate(Stage.PARSE) from e

    def load(self):
        '''Parse the contents as JSON.'''
        text = self.read_all()
        logger.debug('parsing %d characters from %r', len(text), self)

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotException(chain=[], message=f'deformed heap file: {e}').locate(Stage.PARSE) from e
