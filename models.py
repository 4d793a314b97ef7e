import sqlite3
import os

DB_PATH = os.getenv("DB_PATH", "bot_data.db")

def init_db():
    conn = get_db()
    cursor = conn.cursor()

    # A waitlist name is unique within a chat
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS waitlists (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            chat_id INTEGER NOT NULL,
            owner_username TEXT NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (name, chat_id)
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS subscribers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            waitlist_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            username TEXT NOT NULL DEFAULT '',
            subscribed_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (waitlist_id, user_id),
            FOREIGN KEY (waitlist_id) REFERENCES waitlists (id)
        )
    ''')

    # Analytics sink
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS action_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            waitlist_id INTEGER,
            user_id INTEGER,
            username TEXT,
            action TEXT,
            details TEXT,
            timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    conn.commit()
    conn.close()

def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


# Waitlists

def get_waitlist(name, chat_id):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM waitlists WHERE name = ? AND chat_id = ?", (name, chat_id))
    waitlist = cursor.fetchone()
    conn.close()
    return waitlist

def get_waitlists(chat_id):
    """All waitlists of a chat in creation order, each with a subscriber_count column."""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute(
        "SELECT w.*, COUNT(s.id) as subscriber_count FROM waitlists w "
        "LEFT JOIN subscribers s ON s.waitlist_id = w.id "
        "WHERE w.chat_id = ? GROUP BY w.id ORDER BY w.id ASC",
        (chat_id,)
    )
    waitlists = cursor.fetchall()
    conn.close()
    return waitlists

def get_owned_waitlists(owner_username):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM waitlists WHERE owner_username = ? ORDER BY id ASC", (owner_username,))
    waitlists = cursor.fetchall()
    conn.close()
    return waitlists

def create_waitlist(name, chat_id, owner_username):
    """Insert a waitlist and return its id.

    Raises sqlite3.IntegrityError if the chat already has a waitlist with that name.
    """
    conn = get_db()
    cursor = conn.cursor()
    try:
        cursor.execute(
            "INSERT INTO waitlists (name, chat_id, owner_username) VALUES (?, ?, ?)",
            (name, chat_id, owner_username)
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()

def delete_waitlist(waitlist_id):
    conn = get_db()
    cursor = conn.cursor()
    # Subscribers go first, the foreign key restricts deleting a referenced waitlist
    cursor.execute("DELETE FROM subscribers WHERE waitlist_id = ?", (waitlist_id,))
    cursor.execute("DELETE FROM waitlists WHERE id = ?", (waitlist_id,))
    conn.commit()
    conn.close()


# Subscribers

def get_subscriber(waitlist_id, user_id):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM subscribers WHERE waitlist_id = ? AND user_id = ?", (waitlist_id, user_id))
    subscriber = cursor.fetchone()
    conn.close()
    return subscriber

def get_subscribers(waitlist_id):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM subscribers WHERE waitlist_id = ? ORDER BY id ASC", (waitlist_id,))
    subscribers = cursor.fetchall()
    conn.close()
    return subscribers

def get_user_subscriptions(user_id, chat_id=None):
    """Waitlists a user is subscribed to, optionally limited to one chat."""
    conn = get_db()
    cursor = conn.cursor()
    query = (
        "SELECT w.*, s.subscribed_at FROM subscribers s "
        "JOIN waitlists w ON s.waitlist_id = w.id WHERE s.user_id = ?"
    )
    params = [user_id]
    if chat_id is not None:
        query += " AND w.chat_id = ?"
        params.append(chat_id)
    cursor.execute(query + " ORDER BY s.id ASC", params)
    subscriptions = cursor.fetchall()
    conn.close()
    return subscriptions

def find_user_subscription(user_id, name):
    """First waitlist named `name` in any chat that the user is subscribed to."""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute(
        "SELECT w.* FROM subscribers s JOIN waitlists w ON s.waitlist_id = w.id "
        "WHERE s.user_id = ? AND w.name = ? ORDER BY s.id ASC LIMIT 1",
        (user_id, name)
    )
    waitlist = cursor.fetchone()
    conn.close()
    return waitlist

def add_subscriber(waitlist_id, user_id, username):
    """Returns False when the user is already subscribed."""
    conn = get_db()
    cursor = conn.cursor()
    try:
        cursor.execute(
            "INSERT INTO subscribers (waitlist_id, user_id, username) VALUES (?, ?, ?)",
            (waitlist_id, user_id, username or '')
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError as e:
        if "UNIQUE" not in str(e):
            raise
        return False
    finally:
        conn.close()

def remove_subscriber(waitlist_id, user_id):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM subscribers WHERE waitlist_id = ? AND user_id = ?", (waitlist_id, user_id))
    removed = cursor.rowcount
    conn.commit()
    conn.close()
    return removed


def log_actions(rows):
    """rows: (waitlist_id, user_id, username, action, details) tuples"""
    conn = get_db()
    cursor = conn.cursor()
    cursor.executemany(
        "INSERT INTO action_logs (waitlist_id, user_id, username, action, details) VALUES (?, ?, ?, ?, ?)",
        rows
    )
    conn.commit()
    conn.close()
