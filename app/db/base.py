from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Models register themselves on Base.metadata when app.db.models is imported;
# import that package (not individual modules) before create_all or migrations.
