"""
원장 데이터 모델

계좌(Account)와 원장 항목(Transaction), 이체 요청/영수증.

사용 예시:
```python
from core.ledger import Transaction, TransferRequest
from core.types import TransactionType

tx = Transaction.create(
    account_id=account_id,
    type=TransactionType.DEBIT,
    amount=Decimal("100.00"),
    currency="USD",
    category="Transfer",
)
record = tx.to_record()          # 저장소 와이어 형식
same = Transaction.from_record(record)
```
"""

from core.ledger.models import (
    Account,
    AuthUser,
    RecordDecodeError,
    Transaction,
    TransferReceipt,
    TransferRequest,
    parse_amount,
)

__all__ = [
    "Account",
    "AuthUser",
    "RecordDecodeError",
    "Transaction",
    "TransferReceipt",
    "TransferRequest",
    "parse_amount",
]
