"""Seed a demo campaign with three milestones for local development."""
from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

from crowdfund import models  # noqa: E402
from crowdfund.config import get_settings  # noqa: E402
from crowdfund.db import Database  # noqa: E402
from crowdfund.services import sequencer  # noqa: E402


def main() -> None:
    settings = get_settings()
    print(f"Using database: {settings.database_url}")

    database = Database(settings.database_url)
    database.create_all()
    session = database.session()

    try:
        creator = models.User(
            username="creator",
            email="creator@example.com",
            role=models.UserRole.CAMPAIGN_CREATOR,
        )
        donor = models.User(username="donor", email="donor@example.com", role=models.UserRole.DONOR)
        session.add_all([creator, donor])
        session.flush()

        campaign = models.Campaign(
            user_id=creator.id,
            title="Community library",
            description="Books, shelves and a reading room.",
            goal_amount=1000,
            amount_raised=0,
            status=models.CampaignStatus.APPROVED,
        )
        session.add(campaign)
        session.flush()
        for title, goal in (("Books", 500), ("Shelves", 300), ("Reading room", 200)):
            session.add(models.Milestone(campaign_id=campaign.id, title=title, goal_amount=goal, amount=0))
            session.flush()
        sequencer.activate_first(session, campaign.id)
        session.commit()
        print(f"Seed data inserted (campaign id {campaign.id}).")
    finally:
        session.close()
        database.dispose()


if __name__ == "__main__":
    main()
