# json encoding of the handler response bodies
#
import datetime
import decimal
from flask.json.provider import DefaultJSONProvider
import sqlalchemy
from sqlalchemy.exc import NoInspectionAvailable
from uuid import UUID
import modelhandler
from .config import is_debug


def encode_record(obj):
    """
    encode an sqla instance: the loaded column attributes
    (the relations are not followed, they may be cyclic)
    :param obj: mapped instance
    :return: dict
    """
    state = sqlalchemy.inspect(obj)
    unloaded = state.unloaded
    return {prop.key: getattr(obj, prop.key) for prop in state.mapper.column_attrs if prop.key not in unloaded}


class ModelJSONProvider(DefaultJSONProvider):
    """
    JSON encoding for the records returned by the handlers and common types
    """

    sort_keys = False

    @staticmethod
    def default(obj):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if obj is None:
            return None
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, datetime.datetime):
            return obj.isoformat(" ")
        if isinstance(obj, (datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if isinstance(obj, UUID):  # pragma: no cover
            return str(obj)
        if isinstance(obj, decimal.Decimal):  # pragma: no cover
            return float(obj)
        if isinstance(obj, bytes):  # pragma: no cover
            if obj == b"":
                return ""
            return obj.hex()
        if hasattr(obj, "_sa_instance_state"):
            try:
                return encode_record(obj)
            except NoInspectionAvailable:  # pragma: no cover
                pass
        if hasattr(obj, "to_dict"):
            return obj.to_dict()

        # We shouldn't get here in a normal setup
        if not is_debug():  # pragma: no cover
            modelhandler.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "invalid object"}

        return str(obj)
