"""
Basic oauthdb usage example.

This example demonstrates the fundamental store operations:
- Creating a store with configured clients
- Issuing and looking up codes and tokens
- Developer accounts
- Removing a user's grants
"""

import asyncio
import secrets

from oauthdb import OAuthDB, StoreConfig, ConflictError


async def basic_example():
    """Demonstrate basic oauthdb usage"""
    print("Basic oauthdb Example")
    print("=" * 30)

    # 1. Create configuration with one configured client
    config = StoreConfig(
        driver="memory",
        clients=[{
            "id": "dcdb5ae7add825d2",
            "name": "Example App",
            "hashedSecret": secrets.token_hex(32),
            "imageUri": "https://example.com/logo.png",
            "redirectUri": "https://example.com/oauth/callback",
            "trusted": True,
        }],
    )

    # 2. Connect: ping the backend and sync configured clients
    async with OAuthDB.new(config) as db:
        print(f"✓ Store ready on {db.backend.name} backend")

        client = await db.get_client("dcdb5ae7add825d2")
        print(f"✓ Configured client: {client.name} ({client.id})")

        # 3. Issue an authorization code and exchange it for a token
        user_id = secrets.token_hex(16)
        code = await db.generate_code(client.id, user_id, "user@example.com", ["profile"], 600)
        grant = await db.get_code(code)
        print(f"✓ Code issued for scope {grant.scope}, expires at {grant.expires_at}")

        await db.remove_code(code)
        token = await db.generate_token({
            "clientId": client.id,
            "userId": user_id,
            "email": grant.email,
            "scope": grant.scope,
        })
        print(f"✓ Token issued for user {token.user_id}")

        # 4. Developer accounts
        developer = await db.activate_developer("developer@example.com")
        await db.register_client_developer(developer.developer_id, client.id)
        try:
            await db.activate_developer("developer@example.com")
        except ConflictError as e:
            print(f"✓ Duplicate activation rejected: {e.code.value}")

        owners = await db.get_client_developers(client.id)
        print(f"✓ Client developers: {[d.email for d in owners]}")

        # 5. Remove every code and token of the user
        counts = await db.remove_user(user_id)
        print(f"✓ Removed user grants: {counts}")
        assert await db.get_token(token.token) is None


if __name__ == "__main__":
    asyncio.run(basic_example())
