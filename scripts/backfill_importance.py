## Backfills importance scores for sites.
##
## Usage (from the repo root):
##   python scripts/backfill_importance.py [--dry-run] [--reset]
##
## Without --reset only sites with no score (or the default 50) are updated.

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db import store
from importance import calculate_importance_score, get_importance_tier
from policy import DEFAULT_IMPORTANCE


## Returns [(site id, slug, old score, new score)] for sites whose score changes.
def plan_updates(sites, reset=False):
    updates = []
    for site in sites:
        old = site.get('importance_score')
        if old is not None and old != DEFAULT_IMPORTANCE and not reset:
            continue

        new = calculate_importance_score(site)
        if new != old:
            updates.append((site['id'], site.get('slug'), old, new))
    return updates


def main(argv):
    dry_run = '--dry-run' in argv
    reset = '--reset' in argv

    sites = store.fetch_sites_for_backfill()
    print(f'found {len(sites)} sites')

    updates = plan_updates(sites, reset)
    if not updates:
        print('all sites already have importance scores, use --reset to recalculate')
        return

    by_tier = {}
    for _, slug, _, new in updates:
        by_tier.setdefault(get_importance_tier(new), []).append(slug)
    for tier in ('landmark', 'major', 'notable', 'minor'):
        print(f'  {tier}: {len(by_tier.get(tier, []))} sites')

    if dry_run:
        print(f'dry run, {len(updates)} updates not applied')
        return

    store.save_importance_scores([(site_id, new) for site_id, _, _, new in updates])
    print(f'{len(updates)} sites updated')


if (__name__ == '__main__'):
    main(sys.argv[1:])
