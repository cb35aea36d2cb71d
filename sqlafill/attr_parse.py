import datetime
import decimal
import sqlafill
import sqlalchemy


def parse_attr(column, attr_val):
    """
    Parse the supplied `attr_val` so it can be saved in the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_val: json payload value
    :return: processed value
    :raises ValueError: when the value can't be converted to the column type
    """
    if attr_val is None:
        return attr_val

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        """
        This happens when a custom type has been implemented, in which case the user/dev should know how to handle it:
        pass a custom parser in the EntitySchema Field
        """
        sqlafill.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    if isinstance(attr_val, python_type):
        return attr_val

    """
        Parse datetime and date values for some common representations
        If another format is used, the user should create a custom column type or a custom parser
    """
    if python_type == datetime.datetime:
        date_str = str(attr_val)
        try:
            return datetime.datetime.fromisoformat(date_str)
        except ValueError:
            pass
        if "." in date_str:
            # str(datetime.datetime.now()) => "%Y-%m-%d %H:%M:%S.%f"
            return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S.%f")
        # JS datepicker format
        return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S")
    if python_type == datetime.date:
        return datetime.datetime.strptime(str(attr_val), "%Y-%m-%d").date()
    if python_type == datetime.time:
        time_str = str(attr_val)
        if "." in time_str:
            return datetime.datetime.strptime(time_str, "%H:%M:%S.%f").time()
        return datetime.datetime.strptime(time_str, "%H:%M:%S").time()
    if python_type == bool:
        return parse_bool(attr_val)
    if python_type == int and isinstance(attr_val, (float, decimal.Decimal)) and attr_val != int(attr_val):
        raise ValueError(f"Not an integer: {attr_val}")
    if isinstance(attr_val, (dict, list)):
        raise ValueError(f"Invalid value for {column}: {attr_val}")

    try:
        return python_type(attr_val)
    except decimal.InvalidOperation as exc:
        raise ValueError(str(exc)) from exc


def parse_bool(attr_val):
    """
    :param attr_val: json payload value
    :return: boolean, strings like "false" and "0" are False
    """
    if isinstance(attr_val, str):
        value = attr_val.strip().lower()
        if value in ("true", "1", "yes", "on"):
            return True
        if value in ("false", "0", "no", "off", ""):
            return False
        raise ValueError(f"Not a boolean: {attr_val}")
    if isinstance(attr_val, (int, float)):
        return bool(attr_val)
    raise ValueError(f"Not a boolean: {attr_val}")
