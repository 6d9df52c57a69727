# school_admin/errors.py


class RecordStoreError(Exception):
    """Base class for errors raised by the record store."""


class RecordNotFound(RecordStoreError):
    def __init__(self, entity: str, record_id: int):
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.record_id = record_id


class InvalidReference(RecordStoreError):
    """A write names a parent row that does not exist."""

    def __init__(self, field: str, value: int):
        super().__init__(f"'{field}' references missing record {value}")
        self.field = field
        self.value = value


class IntegrityViolation(RecordStoreError):
    """A delete is blocked by child rows under the restrict policy."""

    def __init__(self, entity: str, blocked_by: dict):
        super().__init__(f"{entity.capitalize()} is still referenced")
        self.entity = entity
        self.blocked_by = blocked_by


class DuplicateRecord(RecordStoreError):
    """A write collides with a unique column (admission code, username...)."""

    def __init__(self, entity: str):
        super().__init__(f"{entity.capitalize()} already exists")
        self.entity = entity
