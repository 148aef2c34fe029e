from sqlalchemy.dialects.postgresql import BYTEA, JSONB
from ..extensions import db

# JSONB/BYTEA on Postgres, portable types elsewhere (sqlite in tests).
JSONType = db.JSON().with_variant(JSONB(), 'postgresql')
BinaryType = db.LargeBinary().with_variant(BYTEA(), 'postgresql')
Money = db.Numeric(14, 2, asdecimal=False)
Rate = db.Numeric(7, 3, asdecimal=False)
