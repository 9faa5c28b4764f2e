from bs4 import BeautifulSoup

from samehadaku.extractor import Archetype, extract, extract_home, has_listing_content, page_signal
from samehadaku.models import AnimeDetail, EpisodeDetail, ListingItem
from tests.conftest import EMPTY_PAGE, listing_page

BASE = "https://v1.samehadaku.how"


def soup(html):
    return BeautifulSoup(html, "html.parser")


RECENT_LIST = f"""
<div class="post-show"><ul>
  <li>
    <div class="thumb"><img src="https://img.example/op.jpg"/></div>
    <div class="dtla">
      <h2 class="entry-title"><a href="{BASE}/anime/one-piece/">One Piece</a></h2>
      <span>Episode <author itemprop="name">1100</author></span>
      <span>Released on: 2 hours ago</span>
    </div>
  </li>
  <li><div class="dtla"><h2 class="entry-title"><a href="{BASE}/"> </a></h2></div></li>
</ul></div>
"""

RECENT_HTML = f"<html><body>{RECENT_LIST}</body></html>"

DETAIL_HTML = f"""
<html><head><link rel="canonical" href="{BASE}/anime/one-piece/"/></head><body>
<div class="infox">
  <h1 class="entry-title">One Piece</h1>
  <div class="thumb"><img src="https://img.example/op.jpg"/></div>
</div>
<div class="rating"><strong>Rating 8.72</strong><span class="votes">(12,345 users)</span></div>
<div class="spe">
  <span><b>Japanese</b> Wan Piisu</span>
  <span><b>Status</b> Ongoing</span>
  <span><b>Type</b> TV</span>
  <span><b>Total Episode</b> 1100 Episodes</span>
  <span><b>Studio</b> <a href="{BASE}/studio/toei/">Toei Animation</a></span>
  <span><b>Released:</b> Oct 20, 1999</span>
</div>
<div class="entry-content"><p>Gol D. Roger was the King of the Pirates.</p><p> </p><p>Luffy sets out.</p></div>
<div class="genre-info">
  <a href="{BASE}/genre/action/">Action</a>
  <a href="{BASE}/genre/adventure/">Adventure</a>
</div>
<div class="lstepsiode"><ul>
  <li><div class="eps"><a href="{BASE}/one-piece-episode-1100/">Episode 1100</a></div></li>
  <li><div class="eps"><a href="{BASE}/one-piece-episode-1099/">Episode 1099</a></div></li>
</ul></div>
<div class="listbatch"><a href="{BASE}/batch/one-piece-batch/">One Piece Batch</a></div>
</body></html>
"""

EPISODE_HTML = f"""
<html><head><meta property="og:url" content="{BASE}/one-piece-episode-1100/"/></head><body>
<h1 class="entry-title">One Piece Episode 1100</h1>
<iframe src="https://player.example/embed/abc"></iframe>
<iframe src="https://www.facebook.com/plugins/like.php"></iframe>
<div class="download-eps"><ul>
  <li><strong>MKV 480p</strong>
    <span><a href="https://gofile.io/d/1">Gofile</a></span>
    <span><a href="https://pixeldrain.com/u/2">Pixeldrain</a></span>
  </li>
  <li><strong>MP4 720p</strong><span><a href="https://gofile.io/d/3">Gofile</a></span></li>
</ul></div>
</body></html>
"""

HOME_HTML = f"""
<html><body>
{RECENT_LIST}
<div class="widget-batch"><ul>
  <li><a href="{BASE}/batch/naruto-batch/" title="Naruto Batch"><img src="https://img.example/n.jpg"/></a></li>
  <li><a href="{BASE}/anime/not-a-batch/" title="Not a batch">x</a></li>
</ul></div>
<div class="widgets">
  <div class="widget-title"><h3>Project Movie Samehadaku</h3></div>
  <ul><li><a href="{BASE}/anime/kimi-no-na-wa/" title="Kimi no Na wa"><img src="https://img.example/k.jpg"/></a></li></ul>
</div>
<div class="topten-animesu"><ul>
  <li><a href="{BASE}/anime/one-piece/"><img src="https://img.example/1.jpg"/><span class="judul">One Piece</span><span class="rating">9.1</span></a></li>
  <li><a href="{BASE}/anime/frieren/"><img src="https://img.example/2.jpg"/><span class="judul">Frieren</span><span class="rating">N/A</span></a></li>
</ul></div>
</body></html>
"""


def test_recent_cards_skip_missing_title_or_id():
    records = extract(soup(RECENT_HTML), Archetype.RECENT, base_url=BASE).records
    assert len(records) == 1
    item = records[0]
    assert isinstance(item, ListingItem)
    assert item.title == "One Piece"
    assert item.anime_id == "one-piece"
    assert item.href == "/samehadaku/anime/one-piece"
    assert item.poster == "https://img.example/op.jpg"
    assert item.episodes == "1100"
    assert item.released_on == "2 hours ago"


def test_episode_counts_keep_only_digits():
    html = RECENT_HTML.replace('<author itemprop="name">1100</author>', '<author itemprop="name">Eps 24 END</author>')
    assert extract(soup(html), Archetype.RECENT, base_url=BASE).records[0].episodes == "24"

    unknown = DETAIL_HTML.replace("1100 Episodes", "? Episodes")
    assert extract(soup(unknown), Archetype.DETAIL, base_url=BASE).records[0].episodes is None


def test_listing_cards():
    html = listing_page(items=2) + f"""
    <article class="animpost"><a href="{BASE}/anime/no-title/"></a></article>
    <article class="animpost"><a title="No link">No link</a></article>
    <article class="animpost"><div class="animposx"><a href="{BASE}/anime/bad-score/" title="Bad Score">
      <div class="score">N/A</div></a></div></article>
    """
    records = extract(soup(html), Archetype.LISTING, base_url=BASE).records
    assert [r.anime_id for r in records] == ["show-1", "show-2", "bad-score"]

    first = records[0]
    assert first.title == "Show 1"
    assert first.type == "TV"
    assert first.score == "8.1"
    assert first.status == "Ongoing"
    assert [g.genre_id for g in first.genre_list] == ["action", "slice-of-life"]
    assert first.genre_list[1].title == "Slice Of Life"
    assert first.genre_list[1].href == "/samehadaku/genres/slice-of-life"
    assert first.genre_list[1].samehadaku_url == f"{BASE}/genre/slice-of-life/"

    bad = records[2]
    assert bad.score == ""
    assert bad.status == "Unknown"
    assert bad.genre_list == []


def test_page_signal_reads_controls_and_page_count():
    html = f"""
    <div class="pagination">
      <span>Page 1 of 1,234</span>
      <a class="page-numbers" href="{BASE}/anime/page/2/">2</a>
      <a class="next page-numbers" href="{BASE}/anime/page/2/">Next</a>
    </div>
    """
    signal = page_signal(soup(html))
    assert signal.has_next
    assert not signal.has_prev
    assert signal.page_hints == frozenset({2, 1234})
    assert signal.estimate_total(1) == 1234


def test_page_signal_estimates_without_hints():
    signal = page_signal(soup(listing_page(items=1, prev_url=f"{BASE}/x")))
    assert signal.has_prev
    assert not signal.has_next
    assert signal.estimate_total(4) == 4


def test_has_listing_content():
    assert has_listing_content(soup(listing_page(items=1)))
    assert has_listing_content(soup(RECENT_HTML))
    assert not has_listing_content(soup(EMPTY_PAGE))


def test_genres_deduplicated():
    html = """
    <div class="filter_act genres">
      <label><input type="checkbox" value="action"/> Action</label>
      <label>Slice of Life</label>
      <label>Action</label>
    </div>
    """
    genres = extract(soup(html), Archetype.GENRES, base_url=BASE).records
    assert [g.genre_id for g in genres] == ["action", "slice-of-life"]
    assert genres[1].title == "Slice of Life"
    assert genres[0].samehadaku_url == f"{BASE}/genre/action/"


def test_detail_page():
    records = extract(soup(DETAIL_HTML), Archetype.DETAIL, url=f"{BASE}/anime/ignored/", base_url=BASE).records
    assert len(records) == 1
    detail = records[0]
    assert isinstance(detail, AnimeDetail)
    assert detail.anime_id == "one-piece"
    assert detail.title == "One Piece"
    assert detail.score.value == "8.72"
    assert detail.score.users == "12,345"
    assert detail.japanese == "Wan Piisu"
    assert detail.status == "Ongoing"
    assert detail.type == "TV"
    assert detail.episodes == "1100"
    assert detail.studios == "Toei Animation"
    assert detail.aired == "Oct 20, 1999"
    assert detail.synopsis == ["Gol D. Roger was the King of the Pirates.", "Luffy sets out."]
    assert [g.genre_id for g in detail.genre_list] == ["action", "adventure"]
    assert [(e.episode_id, e.number) for e in detail.episode_list] == [
        ("one-piece-episode-1100", 1100),
        ("one-piece-episode-1099", 1099),
    ]
    assert detail.episode_list[0].href == "/samehadaku/episode/one-piece-episode-1100"
    assert detail.batch_list[0].batch_id == "one-piece-batch"


def test_detail_defaults_when_info_missing():
    html = '<html><body><h1 class="entry-title">Bare</h1></body></html>'
    detail = extract(soup(html), Archetype.DETAIL, url=f"{BASE}/anime/bare/", base_url=BASE).records[0]
    assert detail.anime_id == "bare"
    assert detail.status == "Unknown"
    assert detail.episodes is None
    assert detail.score.value == ""


def test_detail_without_title_is_not_found():
    assert extract(soup(EMPTY_PAGE), Archetype.DETAIL, url=f"{BASE}/anime/x/").records == []


def test_episode_page():
    records = extract(soup(EPISODE_HTML), Archetype.EPISODE, base_url=BASE).records
    episode = records[0]
    assert isinstance(episode, EpisodeDetail)
    assert episode.episode_id == "one-piece-episode-1100"
    assert episode.samehadaku_url == f"{BASE}/one-piece-episode-1100/"
    assert [s.url for s in episode.stream_links] == [
        "https://player.example/embed/abc",
        "https://gofile.io/d/1",
        "https://pixeldrain.com/u/2",
        "https://gofile.io/d/3",
    ]
    assert episode.stream_links[1].server == "MKV 480p - Gofile"
    assert [g.quality for g in episode.download_links] == ["MKV 480p", "MP4 720p"]
    assert [l.host for l in episode.download_links[0].links] == ["Gofile", "Pixeldrain"]


def test_home_sections():
    feed = extract_home(soup(HOME_HTML), base_url=BASE)
    assert [r.anime_id for r in feed.recent] == ["one-piece"]
    assert [b.batch_id for b in feed.batch] == ["naruto-batch"]
    assert feed.batch[0].title == "Naruto Batch"
    assert [m.anime_id for m in feed.movie] == ["kimi-no-na-wa"]
    assert [(t.rank, t.anime_id, t.score) for t in feed.top10] == [
        (1, "one-piece", "9.1"),
        (2, "frieren", ""),
    ]
