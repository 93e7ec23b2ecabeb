"""Database schema definitions for the Household Task Engine.

This module defines the SQL statements for creating database tables.
Timestamps are stored as ISO 8601 TEXT in UTC.
"""

CREATE_HOUSEHOLDS_TABLE = """
CREATE TABLE IF NOT EXISTS households (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_HOUSEHOLD_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS household_users (
    user_id TEXT PRIMARY KEY,
    household_id INTEGER NOT NULL,
    name TEXT,
    FOREIGN KEY (household_id) REFERENCES households (id) ON DELETE CASCADE
);
"""

CREATE_HOUSEHOLD_SETTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS household_settings (
    household_id INTEGER PRIMARY KEY,
    selected_calendars TEXT, -- JSON list
    home_city TEXT,
    home_state TEXT,
    home_country TEXT,
    work_address TEXT,
    family_members TEXT, -- JSON list of {name, relationship, age}
    book_flights_days_ahead INTEGER NOT NULL DEFAULT 60,
    book_sitter_days_ahead INTEGER NOT NULL DEFAULT 14,
    book_hotels_days_ahead INTEGER NOT NULL DEFAULT 30,
    default_sitter_needed BOOLEAN NOT NULL DEFAULT TRUE,
    sitter_start_time INTEGER NOT NULL DEFAULT 18,
    sitter_exceptions TEXT, -- JSON list
    driving_radius_miles INTEGER NOT NULL DEFAULT 50,
    preferred_airports TEXT, -- JSON list
    custom_context TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (household_id) REFERENCES households (id) ON DELETE CASCADE
);
"""

CREATE_ANALYZED_EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS analyzed_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id TEXT UNIQUE NOT NULL, -- External calendar event id
    household_id INTEGER NOT NULL,
    event_title TEXT NOT NULL,
    event_start TIMESTAMP NOT NULL,
    event_end TIMESTAMP NOT NULL,
    event_data TEXT NOT NULL, -- JSON snapshot of the source event
    event_type TEXT NOT NULL,
    requires_sitter BOOLEAN NOT NULL DEFAULT FALSE,
    requires_travel BOOLEAN NOT NULL DEFAULT FALSE,
    requires_formal_attire BOOLEAN NOT NULL DEFAULT FALSE,
    analysis_data TEXT NOT NULL, -- JSON of the EventAnalysis
    analyzed_at TIMESTAMP NOT NULL,
    FOREIGN KEY (household_id) REFERENCES households (id) ON DELETE CASCADE
);
"""

CREATE_SUGGESTED_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS suggested_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    analyzed_event_id INTEGER NOT NULL,
    household_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    type TEXT NOT NULL,
    priority TEXT NOT NULL CHECK(priority IN ('high', 'medium', 'low')),
    due_date TIMESTAMP NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'completed', 'dismissed')),
    completed_at TIMESTAMP,
    dismissed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (analyzed_event_id) REFERENCES analyzed_events (id) ON DELETE CASCADE
);
"""

CREATE_SUGGESTED_TASKS_DUE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_suggested_tasks_household_due
    ON suggested_tasks (household_id, status, due_date);
"""

ALL_TABLES = [
    CREATE_HOUSEHOLDS_TABLE,
    CREATE_HOUSEHOLD_USERS_TABLE,
    CREATE_HOUSEHOLD_SETTINGS_TABLE,
    CREATE_ANALYZED_EVENTS_TABLE,
    CREATE_SUGGESTED_TASKS_TABLE,
    CREATE_SUGGESTED_TASKS_DUE_INDEX,
]
