# Services package init
"""
Prompt & Pause Backend — Services Layer
========================================

What:  Business logic between the routes (HTTP) and the database.
How:   Long-lived components (prompt chain, email client, notifier, auth
       client) are built once in the lifespan from explicit config objects
       and stored on app.state. Per-request state arrives as arguments.

Service Inventory:
    Prompt generation
    - PromptProvider (abstract):   one text-generation provider attempt
    - OpenAICompatibleProvider:    OpenAI, OpenRouter, Hugging Face
    - GeminiPromptProvider:        Google Gemini
    - LocalFallbackProvider:       offline prompt bank
    - PromptGenerator:             ordered fallback chain over the above
    - PromptService:               daily prompt per user

    Maintenance
    - ResendEmailClient:           batch email dispatch
    - MaintenanceNotifier:         paced batches with per-recipient outcomes
    - MaintenanceService:          windows, maintenance mode, notify runs

    Access
    - HostedAuthClient:            bearer token verification
"""
