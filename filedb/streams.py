import io
import logging
from pathlib import PurePath


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around path/bytes/file object to
    uniform its properties: the readers and writers only need read_all()
    and write().

    The stream is a context manager: when it has been opened from a path the
    underlying file is closed on exit, a file object passed by the caller is
    left open since it's not ours.'''
    def __init__(self, obj, flags='r'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        if flags not in ('r', 'w'):
            raise ValueError(f'\'{flags}\' is not a valid flag for a stream')

        self.flags = flags
        self.obj = obj
        self._owned = False

        init_method_name = 'init_%s' % self.obj.__class__.__name__
        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            init_method = self.init_path if isinstance(obj, PurePath) else self.init_fileobj

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.obj!r}, flags={self.flags!r})>'

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def init_str(self):
        '''We think this is a path'''
        self.init_path()

    def init_path(self):
        self._owned = True
        self._path = self.obj
        self.obj = None

        # a file to write is created only when the data is ready
        if self.flags == 'r':
            self._open()

    def _open(self):
        logger.debug('opening path \'%s\' with flags \'%s\'', self._path, self.flags)
        self.obj = open(self._path, self.flags + 'b')

    def init_bytes(self):
        '''We think these are raw bytes'''
        if self.flags != 'r':
            raise ValueError('raw bytes can only be read')
        self.obj = io.BytesIO(self.obj)
        self._owned = True

    init_bytearray = init_bytes

    def init_fileobj(self):
        method = 'read' if self.flags == 'r' else 'write'
        if not hasattr(self.obj, method):
            raise ValueError('\'%s\' is the wrong kind of object to use as stream' % self.obj.__class__.__name__)

    def read_all(self) -> bytes:
        '''Read everything from the actual position up to the end of the stream.'''
        data = self.obj.read()
        logger.debug('read %d bytes from %r', len(data), self)
        return data

    def write(self, data):
        if self.obj is None:
            self._open()

        return self.obj.write(data)

    def close(self):
        if self._owned and self.obj is not None and not self.obj.closed:
            logger.debug('closing %r', self)
            self.obj.close()
