from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

UINT256_DIGITS = 78

class Uint256(TypeDecorator):
    """Exact uint256 storage.

    NUMERIC(78, 0) on PostgreSQL. Other backends get zero-padded decimal
    text of fixed width, so equality and ordering still hold in SQL.
    """
    impl = String(UINT256_DIGITS)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(Numeric(UINT256_DIGITS, 0))
        return dialect.type_descriptor(String(UINT256_DIGITS))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0 or value >= 2 ** 256:
            raise ValueError(f'{value} is out of uint256 range')
        if dialect.name == 'postgresql':
            return Decimal(value)
        return f'{value:0{UINT256_DIGITS}d}'

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)

def _log_key(table: str) -> UniqueConstraint:
    return UniqueConstraint('transaction_hash', 'log_index', name=f'uq_{table}_log')

class IPAsset(Base):
    __tablename__ = 'ip_assets'

    id = Column(Integer, primary_key=True, autoincrement=True)
    contract_address = Column(String(42), nullable=False, index=True)
    token_id = Column(Uint256(), nullable=False)
    name = Column(String(255), nullable=False, default='')
    description = Column(Text)
    metadata_uri = Column(String(512))
    owner = Column(String(42), nullable=False, index=True)
    ipfs_hash = Column(String(255))
    is_active = Column(Boolean, nullable=False, default=True)
    total_revenue = Column(Uint256(), nullable=False, default=0)
    monitored_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    licenses = relationship('License', back_populates='ip_asset')
    royalties = relationship('Royalty', back_populates='ip_asset', order_by='Royalty.id')
    payments = relationship('Payment', back_populates='ip_asset')
    transactions = relationship('IPAssetTransaction', back_populates='ip_asset')

    __table_args__ = (
        UniqueConstraint('contract_address', 'token_id', name='uq_ip_assets_token'),
    )

class License(Base):
    __tablename__ = 'licenses'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_asset_id = Column(Integer, ForeignKey('ip_assets.id'), index=True)
    contract_address = Column(String(42), nullable=False)
    token_id = Column(Uint256(), nullable=False)
    license_type = Column(String(255), nullable=False, default='standard')
    terms = Column(Text)
    price = Column(Uint256())
    max_mints = Column(Uint256())
    current_mints = Column(Uint256(), nullable=False, default=0)
    valid_from = Column(DateTime(timezone=True))
    valid_until = Column(DateTime(timezone=True))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ip_asset = relationship('IPAsset', back_populates='licenses')
    mints = relationship('LicenseMint', back_populates='license')

    __table_args__ = (
        UniqueConstraint('contract_address', 'token_id', name='uq_licenses_token'),
    )

class LicenseMint(Base):
    __tablename__ = 'license_mints'

    id = Column(Integer, primary_key=True, autoincrement=True)
    license_id = Column(Integer, ForeignKey('licenses.id'), nullable=False, index=True)
    buyer = Column(String(42), nullable=False)
    amount = Column(Uint256(), nullable=False)
    price = Column(Uint256())
    transaction_hash = Column(String(66), nullable=False)
    log_index = Column(Integer, nullable=False)
    block_number = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    license = relationship('License', back_populates='mints')

    __table_args__ = (_log_key('license_mints'),)

class Payment(Base):
    __tablename__ = 'payments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_asset_id = Column(Integer, ForeignKey('ip_assets.id'), nullable=False, index=True)
    payer = Column(String(42), nullable=False)
    amount = Column(Uint256(), nullable=False)
    description = Column(Text)
    transaction_hash = Column(String(66), nullable=False)
    log_index = Column(Integer, nullable=False)
    block_number = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ip_asset = relationship('IPAsset', back_populates='payments')

    __table_args__ = (_log_key('payments'),)

class Royalty(Base):
    __tablename__ = 'royalties'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_asset_id = Column(Integer, ForeignKey('ip_assets.id'), nullable=False, index=True)
    royalty_token_id = Column(Uint256())
    royalty_percentage = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ip_asset = relationship('IPAsset', back_populates='royalties')
    claims = relationship('RoyaltyClaim', back_populates='royalty')

class RoyaltyClaim(Base):
    __tablename__ = 'royalty_claims'

    id = Column(Integer, primary_key=True, autoincrement=True)
    royalty_id = Column(Integer, ForeignKey('royalties.id'), nullable=False, index=True)
    claimant = Column(String(42), nullable=False)
    amount = Column(Uint256(), nullable=False)
    transaction_hash = Column(String(66), nullable=False)
    log_index = Column(Integer, nullable=False)
    block_number = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    royalty = relationship('Royalty', back_populates='claims')

    __table_args__ = (_log_key('royalty_claims'),)

class IPAssetTransaction(Base):
    __tablename__ = 'ip_asset_transactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip_asset_id = Column(Integer, ForeignKey('ip_assets.id'), nullable=False, index=True)
    transaction_hash = Column(String(66), nullable=False)
    log_index = Column(Integer, nullable=False)
    block_number = Column(BigInteger, nullable=False)
    from_address = Column(String(42), nullable=False)
    to_address = Column(String(42))
    type = Column(String(20), nullable=False)
    amount = Column(Uint256())
    details = Column('metadata', JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ip_asset = relationship('IPAsset', back_populates='transactions')

    __table_args__ = (_log_key('ip_asset_transactions'),)

class ProcessedLog(Base):
    __tablename__ = 'processed_logs'

    transaction_hash = Column(String(66), primary_key=True)
    log_index = Column(Integer, primary_key=True)
    block_number = Column(BigInteger, nullable=False, index=True)
    event = Column(String(40), nullable=False)
    outcome = Column(String(20), nullable=False)
    processed_at = Column(DateTime(timezone=True), server_default=func.now())

class IndexerCheckpoint(Base):
    __tablename__ = 'indexer_checkpoints'

    name = Column(String(64), primary_key=True)
    last_block = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
