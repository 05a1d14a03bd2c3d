"""Baseline rows written into a freshly created tenant namespace."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from tenantforge.modules.provisioning.schema import TenantTables


log = structlog.get_logger()

ADMIN_CAPABILITIES = 'a:1:{s:13:"administrator";b:1;}'
DEFAULT_CATEGORY = "Uncategorized"
SAMPLE_POST_TITLE = "Hello World!"
SAMPLE_POST_CONTENT = (
    "Welcome to your new site. This is your first post. "
    "Edit or delete it, then start writing!"
)


@dataclass(frozen=True)
class SeedParams:
    """Everything the seed step needs about the new tenant."""

    title: str
    site_url: str
    admin_username: str
    admin_email: str
    admin_password_hash: str


def default_options(params: SeedParams, category_id: int) -> list[dict[str, str]]:
    """Option rows every tenant starts with."""
    values = {
        "siteurl": params.site_url,
        "home": params.site_url,
        "blogname": params.title,
        "blogdescription": "Just another site",
        "admin_email": params.admin_email,
        "users_can_register": "0",
        "start_of_week": "1",
        "date_format": "F j, Y",
        "time_format": "g:i a",
        "timezone_string": "UTC",
        "permalink_structure": "/%year%/%monthnum%/%day%/%postname%/",
        "default_category": str(category_id),
        "default_comment_status": "open",
        "posts_per_page": "10",
        "template": "default",
        "stylesheet": "default",
    }
    return [
        {"option_name": name, "option_value": value, "autoload": "yes"}
        for name, value in values.items()
    ]


async def seed_tenant(
    conn: AsyncConnection,
    tables: TenantTables,
    params: SeedParams,
    now: datetime,
) -> None:
    """Insert the administrator, default category, sample post and options.

    Runs inside the caller's transaction.
    """
    admin_id = (
        await conn.execute(
            insert(tables.users)
            .values(
                user_login=params.admin_username,
                user_pass=params.admin_password_hash,
                user_nicename=params.admin_username.lower()[:50],
                user_email=params.admin_email,
                user_registered=now,
                display_name=params.admin_username,
            )
            .returning(tables.users.c.id)
        )
    ).scalar_one()

    await conn.execute(
        insert(tables.usermeta),
        [
            {"user_id": admin_id, "meta_key": "nickname", "meta_value": params.admin_username},
            {"user_id": admin_id, "meta_key": "capabilities", "meta_value": ADMIN_CAPABILITIES},
            {"user_id": admin_id, "meta_key": "user_level", "meta_value": "10"},
        ],
    )

    term_id = (
        await conn.execute(
            insert(tables.terms)
            .values(name=DEFAULT_CATEGORY, slug="uncategorized")
            .returning(tables.terms.c.term_id)
        )
    ).scalar_one()
    taxonomy_id = (
        await conn.execute(
            insert(tables.term_taxonomy)
            .values(term_id=term_id, taxonomy="category", count=1)
            .returning(tables.term_taxonomy.c.term_taxonomy_id)
        )
    ).scalar_one()

    post_id = (
        await conn.execute(
            insert(tables.posts)
            .values(
                post_author=admin_id,
                post_date=now,
                post_modified=now,
                post_title=SAMPLE_POST_TITLE,
                post_content=SAMPLE_POST_CONTENT,
                post_name="hello-world",
                post_status="publish",
                post_type="post",
            )
            .returning(tables.posts.c.id)
        )
    ).scalar_one()
    await conn.execute(
        tables.posts.update()
        .where(tables.posts.c.id == post_id)
        .values(guid=f"{params.site_url}/?p={post_id}")
    )
    await conn.execute(
        insert(tables.term_relationships).values(
            object_id=post_id, term_taxonomy_id=taxonomy_id
        )
    )

    await conn.execute(insert(tables.options), default_options(params, term_id))

    log.debug("tenant_seeded", admin_id=admin_id, post_id=post_id, category_id=term_id)
