# visitlab - visitor analytics tracking and aggregation service
