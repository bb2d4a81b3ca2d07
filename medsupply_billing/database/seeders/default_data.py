DEFAULT_COMPANY_ID = "00000000-0000-0000-0000-000000000001"
DEFAULT_ADMIN_ID = "00000000-0000-0000-0000-0000000000a1"


def seed(conn):
    # if no company exists, create the default tenant and its admin profile
    row = conn.execute("SELECT COUNT(*) AS n FROM companies").fetchone()
    if row and row["n"] == 0:
        conn.execute("""
            INSERT INTO companies(id, name, currency)
            VALUES (?, ?, ?)
        """, (DEFAULT_COMPANY_ID, "MedSupply Ltd", "KES"))
        conn.execute("""
            INSERT INTO profiles(id, company_id, email, full_name)
            VALUES (?, ?, ?, ?)
        """, (DEFAULT_ADMIN_ID, DEFAULT_COMPANY_ID, "admin@example.com", "Administrator"))
        conn.commit()
