"""
Provision an admin user for a wallet address and print an access token.

Usage: python create_admin.py 0xYourWalletAddress [REFERRALCODE]
"""
import sys

from app.database import SessionLocal
from app.models.user import UserRole
from app.auth.security import create_access_token
from app.services.users import get_or_create

if len(sys.argv) not in (2, 3):
    print(__doc__)
    sys.exit(1)

address = sys.argv[1]
referral_code = sys.argv[2] if len(sys.argv) == 3 else None

db = SessionLocal()
try:
    user, created = get_or_create(db, address, referral_code=referral_code, role=UserRole.ADMIN)
    if not created and user.role != UserRole.ADMIN:
        user.role = UserRole.ADMIN
        db.commit()
    print(f'Admin {"created" if created else "ready"}: id={user.id} address={user.address} code={user.referral_code}')
    print(f'Access token: {create_access_token({"sub": str(user.id)})}')
finally:
    db.close()
