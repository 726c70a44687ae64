# app/database/schema.py
# DDL for every table the API reads or writes. Applied by create_schema.py.

EXTENSIONS_SQL = 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp"'

TABLES_SQL = r'''
    -- Users table
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
        cognito_sub VARCHAR(255) UNIQUE NOT NULL,
        email VARCHAR(255) UNIQUE NOT NULL,
        display_name VARCHAR(100),
        role VARCHAR(20) NOT NULL DEFAULT 'user',
        status VARCHAR(20) NOT NULL DEFAULT 'active',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    -- Contact requests submitted from the public form
    CREATE TABLE IF NOT EXISTS contacts (
        id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
        name VARCHAR(100) NOT NULL CHECK (char_length(name) >= 2),
        email VARCHAR(255) NOT NULL,
        phone VARCHAR(16) NOT NULL CHECK (phone ~ '^\+?[0-9]{10,15}$'),
        description TEXT NOT NULL CHECK (char_length(description) BETWEEN 10 AND 1000),
        status VARCHAR(20) NOT NULL DEFAULT 'new'
            CHECK (status IN ('new', 'contacted', 'in-progress', 'completed', 'cancelled')),
        priority VARCHAR(10) NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        source VARCHAR(50) NOT NULL DEFAULT 'website',
        ip_address VARCHAR(64),
        user_agent TEXT,
        notes JSONB NOT NULL DEFAULT '[]'::jsonb,
        assigned_to UUID REFERENCES users(id) ON DELETE SET NULL,
        follow_up_date TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    -- Email list
    CREATE TABLE IF NOT EXISTS email_subscriptions (
        id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
        email VARCHAR(255) UNIQUE NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'unsubscribed', 'bounced', 'complained')),
        source VARCHAR(20) NOT NULL DEFAULT 'website-footer'
            CHECK (source IN ('website-footer', 'website-popup', 'manual', 'import')),
        subscription_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        unsubscription_date TIMESTAMPTZ,
        unsubscription_reason TEXT,
        preferences JSONB NOT NULL DEFAULT
            '{"newsletters": true, "promotions": true, "updates": true, "events": true}'::jsonb,
        metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
        tags TEXT[] NOT NULL DEFAULT '{}',
        emails_sent INTEGER NOT NULL DEFAULT 0,
        emails_opened INTEGER NOT NULL DEFAULT 0,
        emails_clicked INTEGER NOT NULL DEFAULT 0,
        last_email_sent TIMESTAMPTZ,
        last_email_opened TIMESTAMPTZ,
        last_email_clicked TIMESTAMPTZ,
        is_verified BOOLEAN NOT NULL DEFAULT false,
        verified_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CHECK (status <> 'unsubscribed' OR unsubscription_date IS NOT NULL),
        CHECK (NOT is_verified OR verified_at IS NOT NULL)
    );

    -- Rate limiting for public endpoints
    CREATE TABLE IF NOT EXISTS rate_limits (
        id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
        identifier VARCHAR(255) NOT NULL,
        endpoint VARCHAR(100) NOT NULL,
        requests_count INTEGER DEFAULT 1,
        window_start TIMESTAMPTZ DEFAULT NOW(),
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
'''

INDEXES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)",
    "CREATE INDEX IF NOT EXISTS idx_users_created ON users(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_email ON contacts(email)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_phone ON contacts(phone)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_status ON contacts(status)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_created ON contacts(created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_priority_status ON contacts(priority, status)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_status ON email_subscriptions(status)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_source ON email_subscriptions(source)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_date ON email_subscriptions(subscription_date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_newsletters ON email_subscriptions((preferences->>'newsletters'))",
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_tags ON email_subscriptions USING GIN (tags)",
    "CREATE INDEX IF NOT EXISTS idx_rate_limits_lookup ON rate_limits(identifier, endpoint, window_start)",
    "CREATE INDEX IF NOT EXISTS idx_rate_limits_cleanup ON rate_limits(window_start)",
]
