from flask import Flask, render_template_string
from models import get_db

app = Flask(__name__)

TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>Waitlist Bot Admin</title>
    <style>
        body { font-family: sans-serif; margin: 2rem; background: #f4f4f4; }
        .container { max-width: 1200px; margin: auto; background: white; padding: 2rem; border-radius: 8px; box-shadow: 0 0 10px rgba(0,0,0,0.1); }
        h1, h2 { color: #333; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 2rem; font-size: 0.9em; }
        th, td { padding: 8px; border: 1px solid #ddd; text-align: left; }
        th { background: #eee; }
        .row { display: flex; gap: 2rem; }
        .col { flex: 1; }
    </style>
    <script>
        function reloadData() {
            setTimeout(() => location.reload(), 5000);
        }
    </script>
</head>
<body onload="reloadData()">
    <div class="container">
        <h1>Admin Dashboard</h1>
        <div class="row">
            <div class="col" style="flex: 2;">
                <h2>Waitlists ({{ waitlists|length }})</h2>
                {% if not waitlists %}
                    <p>No waitlists yet.</p>
                {% else %}
                <table>
                    <tr><th>Name</th><th>Chat</th><th>Owner</th><th>Subscribers</th><th>Created</th></tr>
                    {% for w in waitlists %}
                    <tr>
                        <td>{{ w.name }}</td>
                        <td>{{ w.chat_id }}</td>
                        <td>@{{ w.owner_username }}</td>
                        <td>{{ w.subscriber_count }}</td>
                        <td>{{ w.created_at }}</td>
                    </tr>
                    {% endfor %}
                </table>
                {% endif %}
            </div>

            <div class="col" style="flex: 3;">
                <h2>Action Logs (Latest 100)</h2>
                <table>
                    <tr><th>Time</th><th>User</th><th>Action</th><th>Details</th></tr>
                    {% for log in logs %}
                    <tr>
                        <td>{{ log.timestamp }}</td>
                        <td>{{ log.username or log.user_id or 'System' }}</td>
                        <td><b>{{ log.action }}</b></td>
                        <td>{{ log.details }}</td>
                    </tr>
                    {% endfor %}
                </table>
            </div>
        </div>
    </div>
</body>
</html>
"""

@app.route('/')
def dashboard():
    conn = get_db()
    cursor = conn.cursor()

    # Check if table exists (to avoid errors on empty db)
    cursor.execute("SELECT count(name) FROM sqlite_master WHERE type='table' AND name='waitlists'")
    if cursor.fetchone()[0] == 0:
        conn.close()
        return render_template_string(TEMPLATE, waitlists=[], logs=[])

    cursor.execute(
        "SELECT w.*, COUNT(s.id) as subscriber_count FROM waitlists w "
        "LEFT JOIN subscribers s ON s.waitlist_id = w.id GROUP BY w.id ORDER BY w.id DESC"
    )
    waitlists = cursor.fetchall()

    cursor.execute("SELECT * FROM action_logs ORDER BY id DESC LIMIT 100")
    logs = cursor.fetchall()

    conn.close()
    return render_template_string(TEMPLATE, waitlists=waitlists, logs=logs)

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000)
