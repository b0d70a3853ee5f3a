"""
Unit tests for the statistics aggregation. Uses SimpleNamespace stand-ins
for DailyEmotion rows, no DB.
"""
from datetime import date, timedelta
from types import SimpleNamespace as NS

from registro.models.emocion import DailyEmotion
from registro.services.estadisticas import aggregate, get_statistics, TOP_N


def _snap(burbujas, conexiones=0):
    return NS(
        burbujas=[{"nombre": n, "count": c, "color": col} for n, c, col in burbujas],
        conexiones=[{"id": i, "origen": 1, "destino": 2} for i in range(conexiones)],
    )


class TestAggregate:
    def test_two_days(self):
        stats = aggregate([
            _snap([("Alegría", 3, "#FFD700")]),
            _snap([("Alegría", 2, "#FFD700"), ("Miedo", 1, "#9370DB")], conexiones=2),
        ], dias=7)
        assert stats.total_dias_registrados == 2
        assert stats.emociones["Alegría"].count == 5
        assert stats.promedio_emociones_dia == "3.0"
        assert stats.conexiones_totales == 2

    def test_no_days(self):
        stats = aggregate([], dias=30)
        assert stats.total_dias_registrados == 0
        assert stats.promedio_emociones_dia == "0.0"
        assert stats.top == []
        assert stats.dias_analizados == 30

    def test_average_rounds_half_up(self):
        # 5 occurrences over 4 days = 1.25 → "1.3"
        stats = aggregate([
            _snap([("Calma", 2, "#98FB98")]),
            _snap([("Calma", 1, "#98FB98")]),
            _snap([("Calma", 1, "#98FB98")]),
            _snap([("Calma", 1, "#98FB98")]),
        ], dias=7)
        assert stats.promedio_emociones_dia == "1.3"

    def test_top_is_capped_and_sorted(self):
        names = ["A", "B", "C", "D", "E", "F", "G"]
        stats = aggregate([_snap([(n, i + 1, "#000") for i, n in enumerate(names)])], dias=7)
        assert len(stats.top) == TOP_N
        assert [t.nombre for t in stats.top] == ["G", "F", "E", "D", "C"]

    def test_ties_keep_first_seen_order(self):
        stats = aggregate([
            _snap([("Miedo", 2, "#1"), ("Amor", 2, "#2")]),
            _snap([("Calma", 2, "#3")]),
        ], dias=7)
        assert [t.nombre for t in stats.top] == ["Miedo", "Amor", "Calma"]

    def test_first_color_wins(self):
        stats = aggregate([
            _snap([("Amor", 1, "#FF69B4")]),
            _snap([("Amor", 1, "#000000")]),
        ], dias=7)
        assert stats.emociones["Amor"].color == "#FF69B4"

    def test_to_dict_shape(self):
        d = aggregate([_snap([("Alegría", 1, "#FFD700")])], dias=7).to_dict()
        assert set(d) == {
            "total_dias_registrados",
            "emociones_mas_frecuentes",
            "promedio_emociones_dia",
            "conexiones_totales",
            "dias_analizados",
            "top_5_emociones",
        }
        assert d["emociones_mas_frecuentes"]["Alegría"] == {"count": 1, "color": "#FFD700"}


class TestGetStatisticsWindow:
    def test_window_filters_by_user_and_date(self, db, usuario):
        today = date.today()
        db.add_all([
            DailyEmotion(usuario_id=usuario, fecha=today - timedelta(days=1),
                         burbujas=[{"nombre": "Calma", "count": 2, "color": "#98FB98"}],
                         conexiones=[]),
            DailyEmotion(usuario_id=usuario, fecha=today - timedelta(days=60),
                         burbujas=[{"nombre": "Enfado", "count": 9, "color": "#DC143C"}],
                         conexiones=[]),
            DailyEmotion(usuario_id=usuario + "_other", fecha=today - timedelta(days=1),
                         burbujas=[{"nombre": "Miedo", "count": 1, "color": "#9370DB"}],
                         conexiones=[]),
        ])
        db.commit()

        stats = get_statistics(db, usuario, dias=7)
        assert stats.total_dias_registrados == 1
        assert list(stats.emociones) == ["Calma"]
