"""
Register Use Case

Creates a marketplace account and issues its first access token.
"""

from src.api.utils.jwt import TokenService
from src.api.utils.passwords import CredentialStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, User, UserRole
from src.libs.result import Error, Result, Return
from .dtos import RegisterCommand, RegisterResponse, UserInfo


class RegisterUseCase:
    """
    Register Use Case

    Business Logic:
    1. Reject an email that is already registered
    2. Hash password with the configured bcrypt cost (off the event loop)
    3. Create User with role=customer regardless of client input
    4. Record an AuditEvent with action=register
    5. Commit and issue an access token
    """

    def __init__(self, uow: UnitOfWork, credentials: CredentialStore, tokens: TokenService):
        self.uow = uow
        self.credentials = credentials
        self.tokens = tokens

    async def execute(self, command: RegisterCommand) -> Result[RegisterResponse]:
        """
        Execute register use case

        Args:
            command: RegisterCommand with validated name, email, password, phone

        Returns:
            Result[RegisterResponse] with user data and access token
            or Error(EMAIL_ALREADY_EXISTS) if email exists
        """
        email = command.email.strip().lower()
        duplicate = Error("EMAIL_ALREADY_EXISTS", "Email already in use")

        async with self.uow:
            existing_user = await self.uow.users.get_by_email(email)
            if existing_user:
                return Return.err(duplicate)

            password_hash = await self.credentials.hash_async(command.password)

            user = await self.uow.users.create(
                User(
                    name=command.name.strip(),
                    email=email,
                    phone=command.phone.strip() if command.phone else None,
                    password_hash=password_hash,
                    role=UserRole.customer,
                )
            )
            if user is None:
                return Return.err(duplicate)

            await self.uow.audit_events.create(
                AuditEvent(user_id=user.id, action="register", event_metadata={"email": email})
            )

            await self.uow.commit()

        access_token = self.tokens.issue(str(user.id), user.role.value)

        return Return.ok(
            RegisterResponse(
                user=UserInfo(
                    id=str(user.id),
                    name=user.name,
                    email=user.email,
                    role=user.role.value,
                    avatar=user.avatar,
                ),
                access_token=access_token,
                expires_in=self.tokens.default_ttl,
            )
        )
