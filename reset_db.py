from dailydrop.core.database import Base, engine


def reset_database():
    print("⚠️ Dropping all tables...")
    Base.metadata.drop_all(bind=engine)

    print("🚀 Recreating tables...")
    Base.metadata.create_all(bind=engine)
    print("✅ Tables recreated successfully.")


if __name__ == "__main__":
    reset_database()
