import logging
from typing import Dict, Iterator, List, Sequence

from .exceptions import UnrecoverableException
from .fields import Field, create_field


class Schema(object):
    """Ordered list of the fields composing one record of a flat array.

    The order is the only thing that identifies a field inside a record, the
    names are just labels; the length of the schema is the stride of the
    array.
    """

    def __init__(self, fields: List[Field], name=None):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.name = name
        self.fields = fields
        self._offsets = {field.name: offset for offset, field in enumerate(fields)}

        for field in fields:
            if field.depends_on is not None and field.depends_on not in self._offsets:
                self.logger.warning("field '%s' of %s depends on the missing field '%s'",
                                    field.name, self.name, field.depends_on)

    @classmethod
    def from_meta(cls, names: Sequence[str], descriptors: Sequence, name=None) -> "Schema":
        '''Build the schema from the couple of lists found in the snapshot meta,
        like "node_fields" and "node_types".'''
        chain = [name] if name else []

        if not isinstance(names, list) or not isinstance(descriptors, list):
            raise UnrecoverableException(chain=chain, message='field names and types must be lists')

        if len(names) != len(descriptors):
            raise UnrecoverableException(
                chain=chain,
                message=f'{len(names)} field names but {len(descriptors)} field types')

        if not names:
            raise UnrecoverableException(chain=chain, message='a record must have at least one field')

        fields = []
        for field_name, descriptor in zip(names, descriptors):
            if not isinstance(field_name, str):
                raise UnrecoverableException(chain=chain, message=f'field name {field_name!r} is not a string')
            if field_name in (_.name for _ in fields):
                raise UnrecoverableException(chain=chain, message=f'field "{field_name}" is declared twice')

            try:
                fields.append(create_field(field_name, descriptor))
            except UnrecoverableException as e:
                e.chain.extend(chain)
                raise

        return cls(fields, name=name)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(repr(_) for _ in self.fields))

    def __len__(self):
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    @property
    def names(self) -> List[str]:
        return [_.name for _ in self.fields]

    def offset(self, field_name: str) -> int:
        '''Position of the field inside a record.'''
        try:
            return self._offsets[field_name]
        except KeyError:
            raise UnrecoverableException(
                chain=[field_name] + ([self.name] if self.name else []),
                message='required field is missing from the schema') from None

    def require(self, *field_names: str) -> Dict[str, int]:
        '''Check at once that all the fields are present, it returns their offsets.'''
        return {_: self.offset(_) for _ in field_names}
